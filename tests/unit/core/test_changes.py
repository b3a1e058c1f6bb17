"""Unit tests for the change detection gate."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from gitpack_core.changes import ChangeDetector
from gitpack_core.normalize import build_config, normalize_modules
from gitpack_core.ports.orchestrator import OrchestrationError, OrchestrationErrorCode
from gitpack_core.ports.vcs import (
    VcsError,
    VcsErrorCode,
    VcsErrorInfo,
    VcsProtocol,
)
from gitpack_schemas.modules import ModuleDescriptor


class _StubVcs(VcsProtocol):
    def __init__(
        self,
        changed: set[str] | None = None,
        broken: set[str] | None = None,
    ) -> None:
        self.changed = changed or set()
        self.broken = broken or set()
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
        return "deadbeef"


def _modules(tmp_path: Path, options: dict) -> list[ModuleDescriptor]:
    return normalize_modules(build_config(options), tmp_path)


def test_select_modules_only_changed_modules(tmp_path: Path) -> None:
    """Unchanged modules are skipped when no watch path changed."""
    modules = _modules(tmp_path, {"modules": ["app", "lib"], "watch": ["shared"]})
    vcs = _StubVcs(changed={str(tmp_path / "lib")})
    detector = ChangeDetector(vcs, tmp_path)

    selection = asyncio.run(detector.select_modules(modules, ["shared"]))

    assert [module.name for module in selection.selected] == ["lib"]
    assert [module.name for module in selection.skipped] == ["app"]
    assert selection.watch_changed is False


def test_select_modules_global_watch_rebuilds_everything(tmp_path: Path) -> None:
    """A changed global watch path forces every module."""
    modules = _modules(tmp_path, {"modules": ["app", "lib"], "watch": ["shared"]})
    vcs = _StubVcs(changed={str(tmp_path / "shared")})
    detector = ChangeDetector(vcs, tmp_path)

    selection = asyncio.run(detector.select_modules(modules, ["shared"]))

    assert [module.name for module in selection.selected] == ["app", "lib"]
    assert selection.skipped == []
    assert selection.watch_changed is True
    assert vcs.queries.count(str(tmp_path / "shared")) == 1


def test_select_modules_module_watch_extra(tmp_path: Path) -> None:
    """A module's own extra watch path only rebuilds that module."""
    modules = _modules(
        tmp_path,
        {"modules": ["app", {"name": "web", "watch": ["styles"]}]},
    )
    vcs = _StubVcs(changed={str(tmp_path / "styles")})
    detector = ChangeDetector(vcs, tmp_path)

    selection = asyncio.run(detector.select_modules(modules, []))

    assert [module.name for module in selection.selected] == ["web"]


def test_select_modules_builder_force(tmp_path: Path) -> None:
    """A forced builder rebuilds its module without consulting the oracle."""
    modules = _modules(
        tmp_path,
        {"modules": [{"name": "app", "builder": {"force": True}}, "lib"]},
    )
    vcs = _StubVcs()
    detector = ChangeDetector(vcs, tmp_path)

    selection = asyncio.run(detector.select_modules(modules, []))

    assert [module.name for module in selection.selected] == ["app"]
    assert str(tmp_path / "app") not in vcs.queries


def test_select_modules_global_force_skips_oracle(tmp_path: Path) -> None:
    """A forced run selects all modules and never queries version control."""
    modules = _modules(tmp_path, {"modules": ["app", "lib"], "watch": ["shared"]})
    vcs = _StubVcs(broken={str(tmp_path / "shared")})
    detector = ChangeDetector(vcs, tmp_path)

    selection = asyncio.run(detector.select_modules(modules, ["shared"], force=True))

    assert len(selection.selected) == 2
    assert vcs.queries == []


def test_has_changed_wraps_vcs_errors(tmp_path: Path) -> None:
    """Oracle failures become change detection errors naming the target."""
    target = str(tmp_path / "outside")
    detector = ChangeDetector(_StubVcs(broken={target}), tmp_path)

    with pytest.raises(OrchestrationError) as exc_info:
        asyncio.run(detector.has_changed("outside"))

    info = exc_info.value.info
    assert info.code == OrchestrationErrorCode.CHANGE_DETECTION_FAILED
    assert info.details is not None
    assert info.details.target == target
    assert target in info.message
    assert isinstance(exc_info.value.__cause__, VcsError)
    assert "not under version control" in info.message


def test_has_changed_keeps_command_failure_message(tmp_path: Path) -> None:
    """Failures other than a missing repository keep the oracle message."""

    class _MissingGit(_StubVcs):
        async def has_changed(self, path: str) -> bool:
            raise VcsError(
                VcsErrorInfo(
                    code=VcsErrorCode.COMMAND_FAILED,
                    message="git executable not found",
                )
            )

    detector = ChangeDetector(_MissingGit(), tmp_path)

    with pytest.raises(OrchestrationError) as exc_info:
        asyncio.run(detector.has_changed("app"))

    info = exc_info.value.info
    assert info.code == OrchestrationErrorCode.CHANGE_DETECTION_FAILED
    assert info.message == "git executable not found"
    assert "version control" not in info.message
    assert info.details is not None
    assert info.details.target == str(tmp_path / "app")


def test_any_changed_queries_every_target(tmp_path: Path) -> None:
    """A broken target is reported even after an earlier one changed."""
    vcs = _StubVcs(
        changed={str(tmp_path / "a")},
        broken={str(tmp_path / "b")},
    )
    detector = ChangeDetector(vcs, tmp_path)

    with pytest.raises(OrchestrationError):
        asyncio.run(detector.any_changed(["a", "b"]))
