"""Protocol definitions and errors for version-control queries."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from gitpack_schemas.base import BaseSchema
from gitpack_schemas.responses import ErrorDetails, ErrorResponse


class VcsErrorCode(StrEnum):
    """Categorized error codes for version-control queries."""

    NOT_A_REPOSITORY = "not_a_repository"
    COMMAND_FAILED = "command_failed"


class VcsErrorDetails(BaseSchema):
    """Detailed version-control error context."""

    operation: str | None = Field(None, description="VCS operation name")
    path: str | None = Field(None, description="Queried path")
    command: list[str] | None = Field(None, description="Command that was run")
    returncode: int | None = Field(None, description="Process exit status")
    stderr: str | None = Field(None, description="Captured error output")


class VcsErrorInfo(BaseSchema):
    """Structured version-control error data."""

    code: VcsErrorCode = Field(..., description="VCS error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: VcsErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert VCS error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None:
            details = ErrorDetails(
                field=self.details.operation,
                provided=self.details.path,
                valid_options=None,
            )
        code_value = getattr(self.code, "value", self.code)
        return ErrorResponse(
            code=str(code_value), message=self.message, details=details
        )


class VcsError(Exception):
    """Version-control error with structured details."""

    def __init__(self, info: VcsErrorInfo) -> None:
        """Initialize the VCS error.

        Args:
            info: Structured VCS error information.
        """
        super().__init__(info.message)
        self.info = info


@runtime_checkable
class VcsProtocol(Protocol):
    """Change oracle and revision lookup backed by version control."""

    async def has_changed(self, path: str) -> bool:
        """Report whether an absolute path has unrecorded changes.

        Raises:
            VcsError: If the path is not under version control.
        """
        raise NotImplementedError

    async def commit_id(self, path: str) -> str:
        """Return the current revision identifier for an absolute path.

        Raises:
            VcsError: If the path is not under version control.
        """
        raise NotImplementedError
