"""Unit tests for the build orchestrator."""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path

import pytest

from gitpack_core.builders import BuilderRegistry
from gitpack_core.manifest import default_manifest
from gitpack_core.normalize import build_config
from gitpack_core.orchestrator import BuildOrchestrator
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
from gitpack_core.ports.storage import ManifestStoreProtocol
from gitpack_core.ports.vcs import VcsError, VcsErrorCode, VcsErrorInfo, VcsProtocol
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.manifest import AssetManifest
from gitpack_schemas.modules import ModuleAsset, ModuleDescriptor
from gitpack_schemas.primitives import BASELINE_MODULE_VERSION
from gitpack_schemas.validation import validate_manifest


class _StubLogSink(LogSinkProtocol):
    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def emit_log(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self) -> list[str]:
        return [str(entry.event) for entry in self.entries]


class _StubVcs(VcsProtocol):
    def __init__(
        self,
        changed: set[str] | None = None,
        broken: set[str] | None = None,
        commit_broken: bool = False,
    ) -> None:
        self.changed = changed or set()
        self.broken = broken or set()
        self.commit_broken = commit_broken
        self.queries: list[str] = []

    async def has_changed(self, path: str) -> bool:
        self.queries.append(path)
        if path in self.broken:
            raise VcsError(
                VcsErrorInfo(
                    code=VcsErrorCode.NOT_A_REPOSITORY,
                    message=f"not a git repository: {path}",
                )
            )
        return path in self.changed

    async def commit_id(self, path: str) -> str:
        if self.commit_broken:
            raise VcsError(
                VcsErrorInfo(
                    code=VcsErrorCode.COMMAND_FAILED,
                    message=f"git log failed for {path}",
                )
            )
        return f"sha-{Path(path).name}"


class _MemoryManifestStore(ManifestStoreProtocol):
    def __init__(self, path: Path, manifest: AssetManifest | None) -> None:
        self._path = path
        self.manifest = manifest
        self.writes: list[AssetManifest] = []

    @property
    def path(self) -> str:
        return str(self._path)

    async def exists(self) -> bool:
        return self.manifest is not None

    async def read_manifest(self) -> AssetManifest:
        if self.manifest is None:
            self.manifest = default_manifest()
        return self.manifest

    async def write_manifest(self, manifest: AssetManifest) -> None:
        self.writes.append(manifest)
        self.manifest = manifest


class _TimedBuilder(BuilderProtocol):
    """Builder that records overlapping invocations."""

    active = 0
    peak = 0
    delay = 0.02

    async def build(self, module: ModuleDescriptor) -> ModuleAsset:
        type(self).active += 1
        type(self).peak = max(type(self).peak, type(self).active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            type(self).active -= 1
        output = str(Path(module.builder.cwd) / "dist" / "index.js")
        return ModuleAsset(
            name=module.name, chunks={"index": output}, assets=[output]
        )


class _FailingBuilder(BuilderProtocol):
    async def build(self, module: ModuleDescriptor) -> ModuleAsset:
        raise BuilderError(
            BuilderErrorInfo(
                code=BuilderErrorCode.EXECUTION_FAILED,
                message=f"build of {module.name} failed",
            )
        )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Return a symlink-free build context directory.

    Returns:
        Path: Resolved temporary directory.
    """
    return tmp_path.resolve()


@pytest.fixture(autouse=True)
def _reset_timed_builder() -> None:
    """Reset the shared concurrency counters."""
    _TimedBuilder.active = 0
    _TimedBuilder.peak = 0


def _registry() -> BuilderRegistry:
    registry = BuilderRegistry()
    registry.register("command", _TimedBuilder)
    registry.register("fail", _FailingBuilder)
    return registry


def _orchestrator(
    workspace: Path,
    options: dict,
    *,
    vcs: VcsProtocol,
    store: ManifestStoreProtocol | None,
    sink: LogSinkProtocol,
) -> BuildOrchestrator:
    return BuildOrchestrator(
        build_config(options),
        workspace,
        vcs=vcs,
        registry=_registry(),
        manifest_store=store,
        log_sink=sink,
    )


def test_changed_watch_path_rebuilds_into_empty_manifest(workspace: Path) -> None:
    """An empty manifest plus a changed watch path yields manifest version 1."""
    store = _MemoryManifestStore(workspace / "assets.json", default_manifest())
    vcs = _StubVcs(changed={str(workspace / "shared")})
    sink = _StubLogSink()
    orchestrator = _orchestrator(
        workspace,
        {"modules": ["app"], "watch": ["shared"], "assets": "assets.json"},
        vcs=vcs,
        store=store,
        sink=sink,
    )

    report = asyncio.run(orchestrator.run())

    assert report.built == ["app"]
    assert report.manifest_written is True
    assert len(store.writes) == 1
    manifest = store.writes[0]
    assert manifest.version == 1
    entry = manifest.modules["app"]
    assert entry.version == BASELINE_MODULE_VERSION
    assert entry.commit == "sha-app"
    assert entry.assets == ["app/dist/index.js"]
    assert sink.events()[0] == "build_started"
    assert "manifest_written" in sink.events()
    assert sink.events()[-1] == "build_completed"


def test_unchanged_tree_skips_builders_and_write(workspace: Path) -> None:
    """With nothing changed no builder runs and the manifest is untouched."""
    prior = validate_manifest(
        {
            "version": 3,
            "modified": "2026-10-18T00:00:00Z",
            "modules": {"app": {"assets": ["app.js"], "version": 2}},
        }
    )
    store = _MemoryManifestStore(workspace / "assets.json", prior)
    sink = _StubLogSink()
    orchestrator = _orchestrator(
        workspace,
        {"modules": ["app"], "watch": ["shared"], "assets": "assets.json"},
        vcs=_StubVcs(),
        store=store,
        sink=sink,
    )

    report = asyncio.run(orchestrator.run())

    assert report.built == []
    assert report.skipped == ["app"]
    assert report.manifest_written is False
    assert store.writes == []
    assert report.manifest == prior
    assert report.manifest.version == 3
    assert "module_skipped" in sink.events()
    assert "module_started" not in sink.events()
    assert "manifest_unchanged" in sink.events()
    assert sink.entries[0].data is not None
    assert sink.entries[0].data["first_run"] is False


def test_parallel_one_runs_builders_sequentially(workspace: Path) -> None:
    """A cap of one never overlaps builder invocations."""
    store = _MemoryManifestStore(workspace / "assets.json", default_manifest())
    orchestrator = _orchestrator(
        workspace,
        {
            "modules": ["app", "lib"],
            "assets": "assets.json",
            "parallel": 1,
            "force": True,
        },
        vcs=_StubVcs(),
        store=store,
        sink=_StubLogSink(),
    )

    started = time.perf_counter()
    report = asyncio.run(orchestrator.run())
    elapsed = time.perf_counter() - started

    assert report.built == ["app", "lib"]
    assert _TimedBuilder.peak == 1
    assert elapsed >= 2 * _TimedBuilder.delay


def test_unversioned_watch_path_fails_run(workspace: Path) -> None:
    """A watch path outside version control aborts the whole run."""
    broken = str(workspace / "vendor")
    store = _MemoryManifestStore(workspace / "assets.json", default_manifest())
    sink = _StubLogSink()
    orchestrator = _orchestrator(
        workspace,
        {"modules": ["app"], "watch": ["vendor"], "assets": "assets.json"},
        vcs=_StubVcs(broken={broken}),
        store=store,
        sink=sink,
    )

    with pytest.raises(OrchestrationError) as exc_info:
        asyncio.run(orchestrator.run())

    info = exc_info.value.info
    assert info.code == OrchestrationErrorCode.CHANGE_DETECTION_FAILED
    assert info.details is not None
    assert info.details.target == broken
    assert store.writes == []
    failed = sink.entries[-1]
    assert failed.event == "build_failed"
    assert failed.data is not None
    assert failed.data["error_code"] == "change_detection_failed"


def test_missing_manifest_forces_first_build(workspace: Path) -> None:
    """Without a manifest every module is built and the oracle is not asked."""
    store = _MemoryManifestStore(workspace / "assets.json", None)
    vcs = _StubVcs()
    sink = _StubLogSink()
    orchestrator = _orchestrator(
        workspace,
        {"modules": ["app", "lib"], "assets": "assets.json"},
        vcs=vcs,
        store=store,
        sink=sink,
    )

    report = asyncio.run(orchestrator.run())

    assert report.built == ["app", "lib"]
    assert vcs.queries == []
    assert store.writes[0].version == 1
    started = sink.entries[0]
    assert started.event == "build_started"
    assert started.data is not None
    assert started.data["force"] is True
    assert started.data["first_run"] is True


def test_rebuild_bumps_prior_versions(workspace: Path) -> None:
    """Rebuilt modules bump their own version and the manifest version."""
    prior = validate_manifest(
        {
            "version": 5,
            "modified": None,
            "modules": {
                "app": {"assets": ["old.js"], "version": 2, "commit": "old"},
                "lib": {"assets": ["lib.js"], "version": 9, "commit": "lib"},
            },
        }
    )
    store = _MemoryManifestStore(workspace / "assets.json", prior)
    orchestrator = _orchestrator(
        workspace,
        {"modules": ["app", "lib"], "assets": "assets.json"},
        vcs=_StubVcs(changed={str(workspace / "app")}),
        store=store,
        sink=_StubLogSink(),
    )

    report = asyncio.run(orchestrator.run())

    manifest = store.writes[0]
    assert report.built == ["app"]
    assert manifest.version == 6
    assert manifest.modules["app"].version == 3
    assert manifest.modules["lib"] == prior.modules["lib"]


def test_builder_failure_aborts_without_write(workspace: Path) -> None:
    """A failing builder fails the run before the manifest is touched."""
    store = _MemoryManifestStore(workspace / "assets.json", default_manifest())
    sink = _StubLogSink()
    orchestrator = _orchestrator(
        workspace,
        {
            "modules": ["app", {"name": "bad", "builder": {"name": "fail"}}],
            "assets": "assets.json",
            "force": True,
        },
        vcs=_StubVcs(),
        store=store,
        sink=sink,
    )

    with pytest.raises(BuilderError):
        asyncio.run(orchestrator.run())

    assert store.writes == []
    assert "module_failed" in sink.events()
    assert sink.events()[-1] == "build_failed"


def test_commit_lookup_failure_propagates(workspace: Path) -> None:
    """Revision lookup errors are fatal and reach the caller unchanged."""
    store = _MemoryManifestStore(workspace / "assets.json", default_manifest())
    orchestrator = _orchestrator(
        workspace,
        {"modules": ["app"], "assets": "assets.json", "force": True},
        vcs=_StubVcs(commit_broken=True),
        store=store,
        sink=_StubLogSink(),
    )

    with pytest.raises(VcsError) as exc_info:
        asyncio.run(orchestrator.run())

    assert exc_info.value.info.code == VcsErrorCode.COMMAND_FAILED
    assert store.writes == []


def test_without_assets_path_returns_detached_manifest(workspace: Path) -> None:
    """Runs without a manifest path build everything changed and persist nothing."""
    orchestrator = _orchestrator(
        workspace,
        {"modules": ["app"], "force": True},
        vcs=_StubVcs(),
        store=None,
        sink=_StubLogSink(),
    )

    report = asyncio.run(orchestrator.run())

    assert report.manifest_written is False
    entry = report.manifest.modules["app"]
    assert entry.assets == [str(workspace / "app" / "dist" / "index.js")]


def test_parallel_above_cpu_count_warns(workspace: Path) -> None:
    """An oversubscribed cap is reported but still honored."""
    sink = _StubLogSink()
    orchestrator = _orchestrator(
        workspace,
        {"modules": [], "parallel": (os.cpu_count() or 1) + 1},
        vcs=_StubVcs(),
        store=None,
        sink=sink,
    )

    asyncio.run(orchestrator.run())

    assert "build_warning" in sink.events()
