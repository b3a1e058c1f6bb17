"""Manifest reconciliation: path relativization and version bumps."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from gitpack_schemas.defaults import DEFAULT_MANIFEST
from gitpack_schemas.manifest import AssetManifest, ManifestModuleEntry
from gitpack_schemas.modules import ModuleAsset
from gitpack_schemas.primitives import BASELINE_MODULE_VERSION, Timestamp
from gitpack_schemas.validation import validate_manifest


@dataclass(frozen=True, slots=True)
class ManifestMergeResult:
    """Merged manifest and whether it differs from the prior one."""

    manifest: AssetManifest
    changed: bool


def default_manifest() -> AssetManifest:
    """Return a fresh copy of the bundled manifest template.

    Returns:
        AssetManifest: Template manifest.
    """
    return validate_manifest(dict(DEFAULT_MANIFEST))


def relativize(path: str, base_dir: str | Path) -> str:
    """Rewrite an absolute path relative to ``base_dir`` with ``/`` separators.

    Returns:
        str: Relative path.
    """
    relative = os.path.relpath(path, start=str(base_dir))
    return PurePosixPath(*Path(relative).parts).as_posix()


def resolve(path: str, base_dir: str | Path) -> str:
    """Resolve a manifest-relative path back to an absolute path.

    Returns:
        str: Absolute, normalized path.
    """
    return os.path.normpath(os.path.join(str(base_dir), path))


def merge_manifest(
    prior: AssetManifest,
    module_assets: Sequence[ModuleAsset],
    commits: Mapping[str, str],
    manifest_dir: str | Path,
    timestamp: Timestamp,
) -> ManifestMergeResult:
    """Reconcile freshly built module outputs with the persisted manifest.

    Rebuilt modules get manifest-relative paths, their resolved commit and a
    version one above their prior entry (or the baseline when new). Chunks
    are merged over the prior entry's chunks, new names winning; the asset
    list is replaced. Other fields of a prior entry are kept. Modules
    not rebuilt stay exactly as they were. When nothing was rebuilt the prior
    manifest is returned untouched.

    Args:
        prior: Manifest as most recently read from disk.
        module_assets: Outputs of modules rebuilt in this run.
        commits: Module name to resolved revision id.
        manifest_dir: Directory containing the manifest file.
        timestamp: ISO-8601 time recorded as ``modified``.

    Returns:
        ManifestMergeResult: Merged manifest and change flag.
    """
    if not module_assets:
        return ManifestMergeResult(manifest=prior, changed=False)

    modules = {name: entry.model_dump() for name, entry in prior.modules.items()}
    for asset in module_assets:
        previous = prior.modules.get(asset.name)
        entry = _build_entry(asset, previous, commits.get(asset.name), manifest_dir)
        modules[asset.name] = entry.model_dump()

    payload = {
        **default_manifest().model_dump(),
        **prior.model_dump(),
        "version": prior.version + 1,
        "modified": timestamp,
        "modules": modules,
    }
    return ManifestMergeResult(manifest=validate_manifest(payload), changed=True)


def _build_entry(
    asset: ModuleAsset,
    previous: ManifestModuleEntry | None,
    commit: str | None,
    manifest_dir: str | Path,
) -> ManifestModuleEntry:
    version = BASELINE_MODULE_VERSION if previous is None else previous.version + 1
    extra = (previous.model_extra or {}) if previous is not None else {}
    prior_chunks = dict(previous.chunks) if previous is not None else {}
    return ManifestModuleEntry.model_validate(
        {
            **extra,
            "chunks": {
                **prior_chunks,
                **{
                    name: relativize(path, manifest_dir)
                    for name, path in asset.chunks.items()
                },
            },
            "assets": [relativize(path, manifest_dir) for path in asset.assets],
            "version": version,
            "commit": commit,
        }
    )


def build_detached_manifest(
    module_assets: Sequence[ModuleAsset],
    commits: Mapping[str, str],
    timestamp: Timestamp,
) -> AssetManifest:
    """Build an in-memory manifest for runs without a manifest path.

    Paths stay absolute because there is no manifest directory to be
    relative to; nothing is persisted.

    Returns:
        AssetManifest: Manifest describing this run's outputs only.
    """
    template = default_manifest()
    modules = {
        asset.name: ManifestModuleEntry(
            chunks=dict(asset.chunks),
            assets=list(asset.assets),
            version=BASELINE_MODULE_VERSION,
            commit=commits.get(asset.name),
        )
        for asset in module_assets
    }
    return template.model_copy(update={"modified": timestamp, "modules": modules})
