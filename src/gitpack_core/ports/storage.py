"""Protocol definitions and errors for manifest and log persistence."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from gitpack_schemas.base import BaseSchema
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.manifest import AssetManifest
from gitpack_schemas.responses import ErrorDetails, ErrorResponse


class StorageErrorCode(StrEnum):
    """Categorized error codes for storage operations."""

    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"
    SERIALIZATION_ERROR = "serialization_error"
    VALIDATION_ERROR = "validation_error"


class StorageErrorDetails(BaseSchema):
    """Detailed storage error context."""

    operation: str | None = Field(None, description="Storage operation name")
    path: str | None = Field(None, description="Filesystem path")
    reason: str | None = Field(None, description="Additional error context")


class StorageErrorInfo(BaseSchema):
    """Structured storage error data."""

    code: StorageErrorCode = Field(..., description="Storage error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: StorageErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert storage error info to the standard error response schema.

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


class StorageError(Exception):
    """Storage error with structured details."""

    def __init__(self, info: StorageErrorInfo) -> None:
        """Initialize the storage error.

        Args:
            info: Structured storage error information.
        """
        super().__init__(info.message)
        self.info = info


@runtime_checkable
class ManifestStoreProtocol(Protocol):
    """Protocol for reading and writing the persisted asset manifest."""

    @property
    def path(self) -> str:
        """Absolute manifest file path."""
        raise NotImplementedError

    async def exists(self) -> bool:
        """Report whether the manifest file exists."""
        raise NotImplementedError

    async def read_manifest(self) -> AssetManifest:
        """Read the manifest, creating the default template when absent.

        Raises:
            StorageError: If the manifest cannot be read or parsed.
        """
        raise NotImplementedError

    async def write_manifest(self, manifest: AssetManifest) -> None:
        """Overwrite the manifest file.

        Raises:
            StorageError: If the manifest cannot be written.
        """
        raise NotImplementedError


@runtime_checkable
class LogStoreProtocol(Protocol):
    """Protocol for persisting JSONL log entries."""

    async def append_log(self, entry: LogEntry) -> None:
        """Append a log entry to storage."""
        raise NotImplementedError
