"""Protocol definitions and helpers for build orchestration."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from gitpack_schemas.base import BaseSchema
from gitpack_schemas.events import (
    BuildCompletedData,
    BuildEvent,
    BuildFailedData,
    BuildStartedData,
    ModuleEvent,
)
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.primitives import JsonValue, LogLevel, RunId, Timestamp
from gitpack_schemas.responses import ErrorDetails, ErrorResponse


@runtime_checkable
class LogSinkProtocol(Protocol):
    """Protocol for emitting JSONL log entries."""

    async def emit_log(self, entry: LogEntry) -> None:
        """Emit a log entry."""
        raise NotImplementedError


class OrchestrationErrorCode(StrEnum):
    """Categorized error codes for orchestration failures."""

    INVALID_CONFIG = "invalid_config"
    CHANGE_DETECTION_FAILED = "change_detection_failed"
    INVALID_BUILDER_OUTPUT = "invalid_builder_output"


class OrchestrationErrorDetails(BaseSchema):
    """Detailed orchestration error context."""

    module: str | None = Field(None, description="Module associated with error")
    target: str | None = Field(None, description="Path the operation targeted")
    operation: str | None = Field(None, description="Operation that failed")
    reason: str | None = Field(None, description="Additional error context")


class OrchestrationErrorInfo(BaseSchema):
    """Structured orchestration error data."""

    code: OrchestrationErrorCode = Field(..., description="Error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: OrchestrationErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert orchestration error info to standard error response.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None:
            details = ErrorDetails(
                field=self.details.operation,
                provided=self.details.target or self.details.module,
                valid_options=None,
            )
        code_value = getattr(self.code, "value", self.code)
        return ErrorResponse(
            code=str(code_value), message=self.message, details=details
        )


class OrchestrationError(Exception):
    """Orchestration error with structured details."""

    def __init__(self, info: OrchestrationErrorInfo) -> None:
        """Initialize the orchestration error.

        Args:
            info: Structured orchestration error information.
        """
        super().__init__(info.message)
        self.info = info


def build_build_started_log(
    timestamp: Timestamp,
    run_id: RunId,
    modules: list[str],
    parallel: int,
    force: bool,
    first_run: bool = False,
) -> LogEntry:
    """Build a log entry for build start.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Build run identifier.
        modules: Configured module names.
        parallel: Concurrency cap for builder invocations.
        force: Whether every module is forced to rebuild.
        first_run: Whether the force came from a missing manifest.

    Returns:
        LogEntry: Structured build start log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        event=BuildEvent.STARTED,
        run_id=run_id,
        module=None,
        message="Build started",
        data=BuildStartedData(
            modules=modules, parallel=parallel, force=force, first_run=first_run
        ).model_dump(exclude_none=True),
    )


def build_build_completed_log(
    timestamp: Timestamp,
    run_id: RunId,
    built: list[str],
    skipped: list[str],
    manifest_version: int | None,
) -> LogEntry:
    """Build a log entry for build completion.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Build run identifier.
        built: Modules rebuilt in this run.
        skipped: Modules left untouched.
        manifest_version: Manifest version after the run, if any.

    Returns:
        LogEntry: Structured build completion log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        event=BuildEvent.COMPLETED,
        run_id=run_id,
        module=None,
        message="Build completed",
        data=BuildCompletedData(
            built=built, skipped=skipped, manifest_version=manifest_version
        ).model_dump(exclude_none=True),
    )


def build_build_failed_log(
    timestamp: Timestamp, run_id: RunId, message: str, error_code: str, why: str
) -> LogEntry:
    """Build a log entry for build failure.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Build run identifier.
        message: Failure message.
        error_code: Error code describing the failure.
        why: Reason for the failure.

    Returns:
        LogEntry: Structured build failure log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.ERROR,
        event=BuildEvent.FAILED,
        run_id=run_id,
        module=None,
        message=message,
        data=BuildFailedData(error_code=error_code, why=why).model_dump(
            exclude_none=True
        ),
    )


def build_warning_log(timestamp: Timestamp, run_id: RunId, message: str) -> LogEntry:
    """Build a warning log entry for the run.

    Returns:
        LogEntry: Structured warning log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.WARN,
        event=BuildEvent.WARNING,
        run_id=run_id,
        module=None,
        message=message,
        data=None,
    )


def build_module_log(
    timestamp: Timestamp,
    run_id: RunId,
    module: str,
    event: ModuleEvent,
    message: str,
    data: dict[str, JsonValue] | None = None,
    level: LogLevel = LogLevel.INFO,
) -> LogEntry:
    """Build a log entry for a module lifecycle event.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Build run identifier.
        module: Module name.
        event: Module event (skipped/started/completed/failed).
        message: Log message.
        data: Structured event data.
        level: Log level.

    Returns:
        LogEntry: Structured module log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=level,
        event=event,
        run_id=run_id,
        module=module,
        message=message,
        data=data,
    )
