"""gitpack-core: Build orchestration logic for gitpack."""

from gitpack_core.builders import BuilderInvoker, BuilderRegistry
from gitpack_core.changes import ChangeDetector, ChangeSelection
from gitpack_core.executor import run_bounded
from gitpack_core.manifest import (
    ManifestMergeResult,
    build_detached_manifest,
    default_manifest,
    merge_manifest,
    relativize,
    resolve,
)
from gitpack_core.normalize import build_config, merge_defaults, normalize_modules
from gitpack_core.orchestrator import BuildOrchestrator, BuildReport
from gitpack_core.pipeline import run_stages
from gitpack_core.version import VERSION

__version__ = "0.1.0"

__all__ = [
    "VERSION",
    "BuildOrchestrator",
    "BuildReport",
    "BuilderInvoker",
    "BuilderRegistry",
    "ChangeDetector",
    "ChangeSelection",
    "ManifestMergeResult",
    "build_config",
    "build_detached_manifest",
    "default_manifest",
    "merge_defaults",
    "merge_manifest",
    "normalize_modules",
    "relativize",
    "resolve",
    "run_bounded",
    "run_stages",
]
