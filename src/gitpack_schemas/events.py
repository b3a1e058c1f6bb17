"""Event taxonomy and structured payloads for build observability."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from gitpack_schemas.base import BaseSchema
from gitpack_schemas.primitives import JsonValue


class BuildEvent(StrEnum):
    """Event names for the build run lifecycle."""

    STARTED = "build_started"
    COMPLETED = "build_completed"
    FAILED = "build_failed"
    WARNING = "build_warning"


class ModuleEvent(StrEnum):
    """Event names for per-module activity."""

    SKIPPED = "module_skipped"
    STARTED = "module_started"
    COMPLETED = "module_completed"
    FAILED = "module_failed"


class ManifestEvent(StrEnum):
    """Event names for manifest persistence."""

    WRITTEN = "manifest_written"
    UNCHANGED = "manifest_unchanged"


class CommandEvent(StrEnum):
    """Event names for CLI command lifecycle."""

    STARTED = "command_started"
    COMPLETED = "command_completed"
    FAILED = "command_failed"


class BuildStartedData(BaseSchema):
    """Payload for build start events."""

    modules: list[str] = Field(..., description="Configured module names")
    parallel: int = Field(..., ge=1, description="Concurrency cap")
    force: bool = Field(..., description="Whether the run is forced")
    first_run: bool = Field(
        False, description="Whether the run was forced by a missing manifest"
    )


class BuildCompletedData(BaseSchema):
    """Payload for build completion events."""

    built: list[str] = Field(..., description="Modules rebuilt in this run")
    skipped: list[str] = Field(..., description="Modules left untouched")
    manifest_version: int | None = Field(
        None, description="Manifest version after the run"
    )


class BuildFailedData(BaseSchema):
    """Payload for build failure events."""

    error_code: str = Field(..., min_length=1, description="Error code")
    why: str = Field(..., min_length=1, description="Failure reason")


class ModuleCompletedData(BaseSchema):
    """Payload for module completion events."""

    duration_s: float = Field(..., ge=0, description="Builder wall time in seconds")
    chunks: int = Field(..., ge=0, description="Number of chunks produced")
    assets: int = Field(..., ge=0, description="Number of asset files produced")


class ManifestWrittenData(BaseSchema):
    """Payload for manifest write events."""

    path: str = Field(..., min_length=1, description="Manifest file path")
    version: int = Field(..., ge=0, description="Manifest version written")


class CommandStartedData(BaseSchema):
    """Payload for CLI command start events."""

    command: str = Field(..., min_length=1, description="Command name")
    args: dict[str, JsonValue] | None = Field(None, description="Command arguments")


class CommandCompletedData(BaseSchema):
    """Payload for CLI command completion events."""

    command: str = Field(..., min_length=1, description="Command name")


class CommandFailedData(BaseSchema):
    """Payload for CLI command failure events."""

    command: str = Field(..., min_length=1, description="Command name")
    error_code: str = Field(..., min_length=1, description="Error code")
    error_message: str = Field(..., min_length=1, description="Error message")
