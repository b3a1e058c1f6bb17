"""Configuration schemas for gitpack builds."""

from __future__ import annotations

import os

from pydantic import Field, field_validator, model_validator

from gitpack_schemas.base import FrozenSchema
from gitpack_schemas.primitives import (
    BuilderName,
    JsonValue,
    LogLevel,
    LogSinkType,
    ModuleName,
    StdioMode,
)


class BuilderConfig(FrozenSchema):
    """Builder plugin settings for a module.

    `launch` and `cwd` may contain the `{module_name}` placeholder until the
    module is normalized; process parameters are forwarded to the plugin
    untouched.
    """

    name: BuilderName = Field("command", description="Registered builder name")
    force: bool = Field(False, description="Always rebuild modules using this config")
    launch: str = Field(..., min_length=1, description="Builder entry point path")
    cwd: str = Field(..., min_length=1, description="Builder working directory")
    env: dict[str, str] = Field(
        default_factory=dict, description="Extra environment variables"
    )
    exec_path: str | None = Field(
        None, description="Executable used to run the entry point"
    )
    exec_args: list[str] = Field(
        default_factory=list, description="Arguments passed before the entry point"
    )
    stdio: StdioMode = Field("inherit", description="Child stdio handling")
    uid: int | None = Field(None, ge=0, description="User id for the child process")
    gid: int | None = Field(None, ge=0, description="Group id for the child process")
    timeout: float | None = Field(
        None, gt=0, description="Builder timeout in seconds"
    )
    silent: bool = Field(False, description="Discard child stdout and stderr")


class ModuleConfig(FrozenSchema):
    """Long-form module entry as written in the config file."""

    name: ModuleName | None = Field(
        None, description="Module directory relative to the context directory"
    )
    watch: list[str] = Field(
        default_factory=list, description="Extra dependency paths for this module"
    )
    builder: dict[str, JsonValue] = Field(
        default_factory=dict, description="Builder overrides for this module"
    )


type ModuleEntry = ModuleName | ModuleConfig


class LogSinkConfig(FrozenSchema):
    """Configuration for a single log sink."""

    type: LogSinkType = Field(..., description="Log sink type (console|file|noop)")
    level: LogLevel = Field(
        LogLevel.DEBUG, description="Lowest log level written to this sink"
    )

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> LogSinkType:
        if isinstance(value, LogSinkType):
            return value
        if isinstance(value, str):
            return LogSinkType(value)
        return value  # type: ignore[return-value]

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, value: object) -> LogLevel:
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, str):
            return LogLevel(value)
        return value  # type: ignore[return-value]


class LoggingConfig(FrozenSchema):
    """Logging configuration for builds and CLI commands."""

    sinks: list[LogSinkConfig] = Field(
        ..., min_length=1, description="Log sinks to enable"
    )
    logs_dir: str = Field(
        ".gitpack/logs", min_length=1, description="Directory for JSONL logs"
    )

    @model_validator(mode="after")
    def validate_sink_types(self) -> LoggingConfig:
        """Ensure log sink types are unique.

        Returns:
            LoggingConfig: Validated logging configuration.

        Raises:
            ValueError: If sink types are duplicated.
        """
        sink_types = [sink.type for sink in self.sinks]
        if len(set(sink_types)) != len(sink_types):
            raise ValueError("log sinks must not contain duplicates")
        return self


class BuildConfig(FrozenSchema):
    """Top-level configuration for a build run."""

    modules: list[ModuleEntry] | dict[str, ModuleEntry] = Field(
        default_factory=list, description="Modules to build, shorthand or long form"
    )
    watch: list[str] = Field(
        default_factory=list, description="Dependency paths shared by every module"
    )
    assets: str | None = Field(
        None, min_length=1, description="Asset manifest path (relative)"
    )
    parallel: int = Field(
        default_factory=lambda: os.cpu_count() or 1,
        ge=1,
        description="Maximum concurrent builder invocations",
    )
    builder: BuilderConfig = Field(..., description="Default builder settings")
    force: bool = Field(False, description="Rebuild every module")
    logging: LoggingConfig = Field(..., description="Logging configuration")

    def module_entries(self) -> list[tuple[str, ModuleEntry]]:
        """Return module entries keyed by position or mapping key.

        Returns:
            list[tuple[str, ModuleEntry]]: Keys paired with raw entries.
        """
        if isinstance(self.modules, dict):
            return list(self.modules.items())
        return [(str(index), entry) for index, entry in enumerate(self.modules)]

    def module_names(self) -> list[str]:
        """Return the configured module names, falling back to entry keys.

        Returns:
            list[str]: Module names in configuration order.
        """
        names: list[str] = []
        for key, entry in self.module_entries():
            if isinstance(entry, str):
                names.append(entry)
            else:
                names.append(entry.name or key)
        return names
