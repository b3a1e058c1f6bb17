"""Unit tests for the builder registry and invoker."""

from __future__ import annotations

import asyncio
from pathlib import Path
from uuid import UUID

import pytest

from gitpack_core.builders import BuilderInvoker, BuilderRegistry
from gitpack_core.normalize import build_config, normalize_modules
from gitpack_core.ports.builder import (
    BuilderError,
    BuilderErrorCode,
    BuilderErrorInfo,
    BuilderProtocol,
)
from gitpack_core.ports.orchestrator import (
    LogSinkProtocol,
    OrchestrationError,
    OrchestrationErrorCode,
)
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.modules import ModuleAsset, ModuleDescriptor
from gitpack_schemas.primitives import LogLevel, RunId

RUN_ID: RunId = UUID("01890a5c-91c8-7b2a-9f51-9b40d0cfb800")


class _StubLogSink(LogSinkProtocol):
    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def emit_log(self, entry: LogEntry) -> None:
        self.entries.append(entry)


class _EchoBuilder(BuilderProtocol):
    def __init__(self, name: str | None = None) -> None:
        self._name = name

    async def build(self, module: ModuleDescriptor) -> ModuleAsset:
        name = self._name or module.name
        return ModuleAsset(
            name=name,
            chunks={"main": f"{module.builder.cwd}/main.js"},
            assets=[f"{module.builder.cwd}/main.js"],
        )


class _FailingBuilder(BuilderProtocol):
    async def build(self, module: ModuleDescriptor) -> ModuleAsset:
        raise BuilderError(
            BuilderErrorInfo(
                code=BuilderErrorCode.EXECUTION_FAILED,
                message=f"build of {module.name} failed",
            )
        )


def _module(tmp_path: Path, builder_name: str = "command") -> ModuleDescriptor:
    config = build_config({"modules": ["app"], "builder": {"name": builder_name}})
    return normalize_modules(config, tmp_path)[0]


def test_registry_creates_registered_builders() -> None:
    """Registered factories are looked up by name."""
    registry = BuilderRegistry()
    registry.register("echo", _EchoBuilder)
    registry.register("fail", _FailingBuilder)

    assert isinstance(registry.create("echo"), _EchoBuilder)
    assert registry.list_builders() == ["echo", "fail"]


def test_registry_rejects_duplicate_names() -> None:
    """A name can only be registered once."""
    registry = BuilderRegistry()
    registry.register("echo", _EchoBuilder)

    with pytest.raises(ValueError, match="already registered"):
        registry.register("echo", _EchoBuilder)


def test_registry_unknown_builder_lists_registered() -> None:
    """Unknown names raise an unregistered-builder error."""
    registry = BuilderRegistry()
    registry.register("echo", _EchoBuilder)

    with pytest.raises(BuilderError) as exc_info:
        registry.create("webpack")

    info = exc_info.value.info
    assert info.code == BuilderErrorCode.NOT_REGISTERED
    assert info.details is not None
    assert info.details.registered == ["echo"]
    response = info.to_error_response()
    assert response.code == "not_registered"
    assert response.details is not None
    assert response.details.valid_options == ["echo"]


def test_invoker_logs_module_boundaries(tmp_path: Path) -> None:
    """Successful builds emit started and completed entries."""
    registry = BuilderRegistry()
    registry.register("echo", _EchoBuilder)
    sink = _StubLogSink()
    invoker = BuilderInvoker(registry, sink, RUN_ID)
    module = _module(tmp_path, "echo")

    asset = asyncio.run(invoker.invoke(module))

    assert asset.name == "app"
    assert [entry.event for entry in sink.entries] == [
        "module_started",
        "module_completed",
    ]
    completed = sink.entries[-1]
    assert completed.module == "app"
    assert completed.data is not None
    assert completed.data["chunks"] == 1
    assert completed.data["assets"] == 1
    assert completed.data["duration_s"] >= 0


def test_invoker_logs_and_reraises_failures(tmp_path: Path) -> None:
    """Builder errors are logged at error level and propagate unchanged."""
    registry = BuilderRegistry()
    registry.register("fail", _FailingBuilder)
    sink = _StubLogSink()
    invoker = BuilderInvoker(registry, sink, RUN_ID)

    with pytest.raises(BuilderError) as exc_info:
        asyncio.run(invoker.invoke(_module(tmp_path, "fail")))

    assert exc_info.value.info.code == BuilderErrorCode.EXECUTION_FAILED
    assert sink.entries[-1].event == "module_failed"
    assert sink.entries[-1].level == LogLevel.ERROR


def test_invoker_rejects_mismatched_output(tmp_path: Path) -> None:
    """Outputs reported for another module are rejected."""
    registry = BuilderRegistry()
    registry.register("echo", lambda: _EchoBuilder(name="other"))
    invoker = BuilderInvoker(registry, _StubLogSink(), RUN_ID)

    with pytest.raises(OrchestrationError) as exc_info:
        asyncio.run(invoker.invoke(_module(tmp_path, "echo")))

    assert exc_info.value.info.code == OrchestrationErrorCode.INVALID_BUILDER_OUTPUT


def test_invoker_unregistered_builder(tmp_path: Path) -> None:
    """An unknown builder name fails before anything is logged."""
    sink = _StubLogSink()
    invoker = BuilderInvoker(BuilderRegistry(), sink, RUN_ID)

    with pytest.raises(BuilderError) as exc_info:
        asyncio.run(invoker.invoke(_module(tmp_path)))

    assert exc_info.value.info.code == BuilderErrorCode.NOT_REGISTERED
    assert sink.entries == []
