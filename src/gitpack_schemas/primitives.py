"""Primitive types and enums shared across gitpack schemas."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal
from uuid import UUID

from pydantic import Field

ISO_8601_PATTERN = (
    r"^\d{4}-\d{2}-\d{2}T"
    r"\d{2}:\d{2}:\d{2}"
    r"(?:\.\d+)?"
    r"(?:Z|[+-]\d{2}:\d{2})$"
)
EVENT_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"
BUILDER_NAME_PATTERN = r"^[a-z][a-z0-9_-]*$"

# Placeholder replaced with the module name in builder launch/cwd paths.
MODULE_NAME_TOKEN = "{module_name}"

# Per-module version assigned the first time a module lands in a manifest.
BASELINE_MODULE_VERSION = 1

type RunId = UUID
type Timestamp = Annotated[str, Field(pattern=ISO_8601_PATTERN)]
type EventName = Annotated[str, Field(pattern=EVENT_NAME_PATTERN)]
type BuilderName = Annotated[str, Field(pattern=BUILDER_NAME_PATTERN)]
type ModuleName = Annotated[str, Field(min_length=1)]
type StdioMode = Literal["inherit", "pipe", "ignore"]

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]


class LogLevel(StrEnum):
    """Log level values for JSONL logs."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogSinkType(StrEnum):
    """Supported log sink types."""

    CONSOLE = "console"
    FILE = "file"
    NOOP = "noop"
