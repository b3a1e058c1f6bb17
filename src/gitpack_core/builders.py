"""Builder plugin registry and invocation."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime

from gitpack_core.ports.builder import (
    BuilderError,
    BuilderErrorCode,
    BuilderErrorDetails,
    BuilderErrorInfo,
    BuilderProtocol,
)
from gitpack_core.ports.orchestrator import (
    LogSinkProtocol,
    OrchestrationError,
    OrchestrationErrorCode,
    OrchestrationErrorDetails,
    OrchestrationErrorInfo,
    build_module_log,
)
from gitpack_schemas.events import ModuleCompletedData, ModuleEvent
from gitpack_schemas.modules import ModuleAsset, ModuleDescriptor
from gitpack_schemas.primitives import JsonValue, LogLevel, RunId

type BuilderFactory = Callable[[], BuilderProtocol]


class BuilderRegistry:
    """Registry for builder plugin factories.

    Builders are registered by name at startup and looked up by the
    ``builder.name`` of each module at invocation time.
    """

    def __init__(self) -> None:
        """Initialize an empty builder registry."""
        self._factories: dict[str, BuilderFactory] = {}

    def register(self, name: str, factory: BuilderFactory) -> None:
        """Register a builder factory.

        Args:
            name: Unique builder name.
            factory: Callable that creates a builder instance.

        Raises:
            ValueError: If a builder with this name is already registered.
        """
        if name in self._factories:
            raise ValueError(f"Builder already registered: {name}")
        self._factories[name] = factory

    def create(self, name: str) -> BuilderProtocol:
        """Create a builder instance by name.

        Args:
            name: Name of the builder to create.

        Returns:
            BuilderProtocol: New builder instance.

        Raises:
            BuilderError: If the builder name is not registered.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise BuilderError(
                BuilderErrorInfo(
                    code=BuilderErrorCode.NOT_REGISTERED,
                    message=f"Unregistered builder: {name}",
                    details=BuilderErrorDetails(
                        builder=name, registered=self.list_builders()
                    ),
                )
            )
        return factory()

    def list_builders(self) -> list[str]:
        """List all registered builder names.

        Returns:
            Sorted list of registered builder names.
        """
        return sorted(self._factories.keys())


class BuilderInvoker:
    """Resolve and run the builder for a module, logging its boundaries."""

    def __init__(
        self, registry: BuilderRegistry, log_sink: LogSinkProtocol, run_id: RunId
    ) -> None:
        """Initialize the invoker.

        Args:
            registry: Registry used to resolve builders by name.
            log_sink: Sink for module lifecycle log entries.
            run_id: Build run identifier stamped on log entries.
        """
        self._registry = registry
        self._log_sink = log_sink
        self._run_id = run_id

    async def invoke(self, module: ModuleDescriptor) -> ModuleAsset:
        """Build a module with its configured builder.

        Args:
            module: Normalized module descriptor.

        Returns:
            ModuleAsset: Outputs reported by the builder.

        Raises:
            BuilderError: If the builder is unknown or fails.
            OrchestrationError: If the builder reports another module's output.
        """
        builder = self._registry.create(module.builder.name)
        await self._emit(module, ModuleEvent.STARTED, "Module build started")
        started = time.perf_counter()
        try:
            asset = await builder.build(module)
        except Exception as exc:
            await self._emit(
                module,
                ModuleEvent.FAILED,
                f"Module build failed: {exc}",
                level=LogLevel.ERROR,
            )
            raise
        if asset.name != module.name:
            raise OrchestrationError(
                OrchestrationErrorInfo(
                    code=OrchestrationErrorCode.INVALID_BUILDER_OUTPUT,
                    message=(
                        f"Builder {module.builder.name} returned output for "
                        f"{asset.name} while building {module.name}"
                    ),
                    details=OrchestrationErrorDetails(
                        module=module.name, operation="build"
                    ),
                )
            )
        duration = time.perf_counter() - started
        await self._emit(
            module,
            ModuleEvent.COMPLETED,
            "Module build completed",
            data=ModuleCompletedData(
                duration_s=duration,
                chunks=len(asset.chunks),
                assets=len(asset.assets),
            ).model_dump(),
        )
        return asset

    async def _emit(
        self,
        module: ModuleDescriptor,
        event: ModuleEvent,
        message: str,
        *,
        data: dict[str, JsonValue] | None = None,
        level: LogLevel = LogLevel.INFO,
    ) -> None:
        await self._log_sink.emit_log(
            build_module_log(
                timestamp=_now_timestamp(),
                run_id=self._run_id,
                module=module.name,
                event=event,
                message=message,
                data=data,
                level=level,
            )
        )


def _now_timestamp() -> str:
    timestamp = datetime.now(UTC).isoformat()
    return timestamp.replace("+00:00", "Z")
