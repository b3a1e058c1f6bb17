"""JSONL log entry schema for build events."""

from __future__ import annotations

from pydantic import Field

from gitpack_schemas.base import BaseSchema
from gitpack_schemas.primitives import (
    EventName,
    JsonValue,
    LogLevel,
    ModuleName,
    RunId,
    Timestamp,
)


class LogEntry(BaseSchema):
    """Single log line in JSONL format."""

    timestamp: Timestamp = Field(
        ..., description="ISO-8601 timestamp for the log entry"
    )
    level: LogLevel = Field(..., description="Log level")
    event: EventName = Field(..., description="Event name")
    run_id: RunId = Field(..., description="Build run identifier")
    module: ModuleName | None = Field(None, description="Module if applicable")
    message: str = Field(..., min_length=1, description="Log message")
    data: dict[str, JsonValue] | None = Field(None, description="Structured event data")
