"""Protocol definitions and errors for builder plugins."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from gitpack_schemas.base import BaseSchema
from gitpack_schemas.modules import ModuleAsset, ModuleDescriptor
from gitpack_schemas.responses import ErrorDetails, ErrorResponse


class BuilderErrorCode(StrEnum):
    """Categorized error codes for builder invocations."""

    NOT_REGISTERED = "not_registered"
    EXECUTION_FAILED = "execution_failed"
    TIMEOUT = "timeout"
    INVALID_REPORT = "invalid_report"


class BuilderErrorDetails(BaseSchema):
    """Detailed builder error context."""

    builder: str | None = Field(None, description="Builder name")
    module: str | None = Field(None, description="Module being built")
    returncode: int | None = Field(None, description="Process exit status")
    registered: list[str] | None = Field(None, description="Registered builders")
    reason: str | None = Field(None, description="Additional error context")


class BuilderErrorInfo(BaseSchema):
    """Structured builder error data."""

    code: BuilderErrorCode = Field(..., description="Builder error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: BuilderErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert builder error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None:
            details = ErrorDetails(
                field="builder",
                provided=self.details.builder or self.details.module,
                valid_options=self.details.registered,
            )
        code_value = getattr(self.code, "value", self.code)
        return ErrorResponse(
            code=str(code_value), message=self.message, details=details
        )


class BuilderError(Exception):
    """Builder error with structured details."""

    def __init__(self, info: BuilderErrorInfo) -> None:
        """Initialize the builder error.

        Args:
            info: Structured builder error information.
        """
        super().__init__(info.message)
        self.info = info


@runtime_checkable
class BuilderProtocol(Protocol):
    """Protocol for a builder plugin."""

    async def build(self, module: ModuleDescriptor) -> ModuleAsset:
        """Build a module and report its absolute output paths.

        Raises:
            BuilderError: If the build fails.
        """
        raise NotImplementedError
