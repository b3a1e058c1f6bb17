"""Core build orchestration logic."""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from gitpack_core.builders import BuilderInvoker, BuilderRegistry
from gitpack_core.changes import ChangeDetector, ChangeSelection
from gitpack_core.executor import run_bounded
from gitpack_core.manifest import build_detached_manifest, merge_manifest
from gitpack_core.normalize import normalize_modules
from gitpack_core.pipeline import run_stages
from gitpack_core.ports.orchestrator import (
    LogSinkProtocol,
    build_build_completed_log,
    build_build_failed_log,
    build_build_started_log,
    build_module_log,
    build_warning_log,
)
from gitpack_core.ports.storage import ManifestStoreProtocol
from gitpack_core.ports.vcs import VcsProtocol
from gitpack_schemas.config import BuildConfig
from gitpack_schemas.events import ManifestEvent, ManifestWrittenData, ModuleEvent
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.manifest import AssetManifest
from gitpack_schemas.modules import ModuleAsset, ModuleDescriptor
from gitpack_schemas.primitives import LogLevel, RunId, Timestamp


@dataclass(frozen=True, slots=True)
class BuildReport:
    """Outcome of a completed build run."""

    run_id: RunId
    built: list[str]
    skipped: list[str]
    manifest: AssetManifest
    manifest_written: bool


@dataclass(frozen=True, slots=True)
class _PlannedBuild:
    config: BuildConfig
    modules: list[ModuleDescriptor]


@dataclass(frozen=True, slots=True)
class _BuiltModules:
    selection: ChangeSelection
    assets: list[ModuleAsset]
    commits: dict[str, str] = field(default_factory=dict)


class BuildOrchestrator:
    """Run the staged build pipeline for a configured set of modules."""

    def __init__(
        self,
        config: BuildConfig,
        context_dir: Path,
        *,
        vcs: VcsProtocol,
        registry: BuilderRegistry,
        manifest_store: ManifestStoreProtocol | None = None,
        log_sink: LogSinkProtocol,
        run_id: RunId | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Frozen build configuration.
            context_dir: Directory relative paths resolve against.
            vcs: Version-control oracle for change detection and commits.
            registry: Builder plugin registry.
            manifest_store: Manifest persistence; None when the config has no
                ``assets`` path.
            log_sink: Sink for structured log entries.
            run_id: Optional run identifier; generated when omitted.
        """
        self._config = config
        self._context_dir = context_dir.resolve()
        self._vcs = vcs
        self._manifest_store = manifest_store
        self._log_sink = log_sink
        self.run_id: RunId = run_id or uuid4()
        self._detector = ChangeDetector(vcs, self._context_dir)
        self._invoker = BuilderInvoker(registry, log_sink, self.run_id)

    async def run(self) -> BuildReport:
        """Execute the build pipeline.

        Returns:
            BuildReport: Built and skipped modules plus the resulting manifest.

        Raises:
            Exception: The first stage failure, after a ``build_failed`` log
                entry is emitted.
        """
        try:
            report: BuildReport = await run_stages(
                [
                    self._start,
                    self._normalize,
                    self._select,
                    self._build,
                    self._resolve_commits,
                    self._write_manifest,
                ]
            )
        except Exception as exc:
            await self._emit(
                build_build_failed_log(
                    timestamp=_now_timestamp(),
                    run_id=self.run_id,
                    message="Build failed",
                    error_code=_error_code(exc),
                    why=str(exc) or type(exc).__name__,
                )
            )
            raise
        await self._emit(
            build_build_completed_log(
                timestamp=_now_timestamp(),
                run_id=self.run_id,
                built=report.built,
                skipped=report.skipped,
                manifest_version=report.manifest.version,
            )
        )
        return report

    async def _start(self, _: None) -> BuildConfig:
        config = await self._apply_first_run()
        await self._emit(
            build_build_started_log(
                timestamp=_now_timestamp(),
                run_id=self.run_id,
                modules=config.module_names(),
                parallel=config.parallel,
                force=config.force,
                first_run=config.force and not self._config.force,
            )
        )
        cpu_count = os.cpu_count() or 1
        if config.parallel > cpu_count:
            await self._emit(
                build_warning_log(
                    timestamp=_now_timestamp(),
                    run_id=self.run_id,
                    message=(
                        f"parallel is {config.parallel} but this machine "
                        f"has {cpu_count} CPU cores"
                    ),
                )
            )
        return config

    async def _apply_first_run(self) -> BuildConfig:
        # A missing manifest means nothing has been recorded yet.
        store = self._manifest_store
        if store is None or self._config.force or await store.exists():
            return self._config
        return self._config.model_copy(update={"force": True})

    async def _normalize(self, config: BuildConfig) -> _PlannedBuild:
        return _PlannedBuild(
            config=config, modules=normalize_modules(config, self._context_dir)
        )

    async def _select(self, planned: _PlannedBuild) -> ChangeSelection:
        selection = await self._detector.select_modules(
            planned.modules, planned.config.watch, force=planned.config.force
        )
        for module in selection.skipped:
            await self._emit(
                build_module_log(
                    timestamp=_now_timestamp(),
                    run_id=self.run_id,
                    module=module.name,
                    event=ModuleEvent.SKIPPED,
                    message="Module unchanged, skipping build",
                )
            )
        return selection

    async def _build(self, selection: ChangeSelection) -> _BuiltModules:
        thunks = [
            _bind_invoke(self._invoker, module) for module in selection.selected
        ]
        assets = await run_bounded(thunks, self._config.parallel)
        return _BuiltModules(selection=selection, assets=assets)

    async def _resolve_commits(self, built: _BuiltModules) -> _BuiltModules:
        commits: dict[str, str] = {}
        for asset in built.assets:
            path = str(self._context_dir / asset.name)
            commits[asset.name] = await self._vcs.commit_id(path)
        return replace(built, commits=commits)

    async def _write_manifest(self, built: _BuiltModules) -> BuildReport:
        timestamp = _now_timestamp()
        store = self._manifest_store
        written = False
        if store is None:
            manifest = build_detached_manifest(built.assets, built.commits, timestamp)
        else:
            # Re-read right before merging to narrow the lost-update window.
            prior = await store.read_manifest()
            result = merge_manifest(
                prior,
                built.assets,
                built.commits,
                Path(store.path).parent,
                timestamp,
            )
            manifest = result.manifest
            if result.changed:
                await store.write_manifest(manifest)
                written = True
            await self._emit_manifest_log(store.path, manifest, written)
        return BuildReport(
            run_id=self.run_id,
            built=[module.name for module in built.selection.selected],
            skipped=[module.name for module in built.selection.skipped],
            manifest=manifest,
            manifest_written=written,
        )

    async def _emit_manifest_log(
        self, path: str, manifest: AssetManifest, written: bool
    ) -> None:
        event = ManifestEvent.WRITTEN if written else ManifestEvent.UNCHANGED
        message = "Manifest written" if written else "Manifest unchanged"
        await self._emit(
            LogEntry(
                timestamp=_now_timestamp(),
                level=LogLevel.INFO,
                event=event,
                run_id=self.run_id,
                module=None,
                message=message,
                data=ManifestWrittenData(
                    path=path, version=manifest.version
                ).model_dump(),
            )
        )

    async def _emit(self, entry: LogEntry) -> None:
        await self._log_sink.emit_log(entry)


def _bind_invoke(
    invoker: BuilderInvoker, module: ModuleDescriptor
) -> Callable[[], Awaitable[ModuleAsset]]:
    async def _thunk() -> ModuleAsset:
        return await invoker.invoke(module)

    return _thunk


def _error_code(exc: Exception) -> str:
    info = getattr(exc, "info", None)
    code = getattr(info, "code", None)
    if code is None:
        return "runtime_error"
    return str(getattr(code, "value", code))


def _now_timestamp() -> Timestamp:
    timestamp = datetime.now(UTC).isoformat()
    return timestamp.replace("+00:00", "Z")
