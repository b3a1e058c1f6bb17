"""Change detection gate deciding which modules rebuild."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from gitpack_core.ports.orchestrator import (
    OrchestrationError,
    OrchestrationErrorCode,
    OrchestrationErrorDetails,
    OrchestrationErrorInfo,
)
from gitpack_core.ports.vcs import VcsError, VcsErrorCode, VcsProtocol
from gitpack_schemas.modules import ModuleDescriptor


@dataclass(frozen=True, slots=True)
class ChangeSelection:
    """Outcome of change detection for one run."""

    selected: list[ModuleDescriptor] = field(default_factory=list)
    skipped: list[ModuleDescriptor] = field(default_factory=list)
    watch_changed: bool = False


class ChangeDetector:
    """Aggregate VCS change signals into per-module rebuild decisions."""

    def __init__(self, vcs: VcsProtocol, context_dir: Path) -> None:
        """Initialize the detector.

        Args:
            vcs: Version-control change oracle.
            context_dir: Directory that relative module and watch paths
                resolve against.
        """
        self._vcs = vcs
        self._context_dir = context_dir

    async def has_changed(self, target: str) -> bool:
        """Report whether a path changed since it was last recorded.

        Args:
            target: Path relative to the context directory, or absolute.

        Returns:
            bool: True when the oracle reports changes.

        Raises:
            OrchestrationError: If the oracle cannot resolve history for the
                path. The failure is never treated as "unchanged".
        """
        path = str(self._context_dir / target)
        try:
            return await self._vcs.has_changed(path)
        except VcsError as exc:
            code = getattr(exc.info.code, "value", exc.info.code)
            if code == VcsErrorCode.NOT_A_REPOSITORY:
                message = (
                    "Cannot read change history because the target is not "
                    f'under version control "{path}"'
                )
            else:
                message = exc.info.message
            raise OrchestrationError(
                OrchestrationErrorInfo(
                    code=OrchestrationErrorCode.CHANGE_DETECTION_FAILED,
                    message=message,
                    details=OrchestrationErrorDetails(
                        target=path,
                        operation="has_changed",
                        reason=exc.info.message,
                    ),
                )
            ) from exc

    async def any_changed(self, targets: Sequence[str]) -> bool:
        """Report whether any of the targets changed.

        Every target is queried so an unresolvable path always surfaces.

        Returns:
            bool: True when at least one target changed.
        """
        changed = False
        for target in targets:
            if await self.has_changed(target):
                changed = True
        return changed

    async def select_modules(
        self,
        modules: Sequence[ModuleDescriptor],
        watch: Sequence[str],
        *,
        force: bool = False,
    ) -> ChangeSelection:
        """Split modules into those that must rebuild and those to skip.

        ``watch_changed`` is computed once for the run. A module rebuilds when
        the run is forced, its builder is forced, a global watch path changed,
        the module directory changed, or one of its own extra watch paths
        changed.

        Args:
            modules: Normalized module descriptors.
            watch: Global watch paths shared by every module.
            force: Rebuild every module without consulting the oracle.

        Returns:
            ChangeSelection: Selected and skipped modules in input order.
        """
        if force:
            return ChangeSelection(selected=list(modules))

        watch_changed = await self.any_changed(watch)
        global_watch = set(watch)
        selected: list[ModuleDescriptor] = []
        skipped: list[ModuleDescriptor] = []
        for module in modules:
            if await self._module_changed(module, watch_changed, global_watch):
                selected.append(module)
            else:
                skipped.append(module)
        return ChangeSelection(
            selected=selected, skipped=skipped, watch_changed=watch_changed
        )

    async def _module_changed(
        self,
        module: ModuleDescriptor,
        watch_changed: bool,
        global_watch: set[str],
    ) -> bool:
        if module.builder.force or watch_changed:
            return True
        if await self.has_changed(module.name):
            return True
        extras = [target for target in module.watch if target not in global_watch]
        return await self.any_changed(extras)
