"""Asset manifest document schemas."""

from __future__ import annotations

from pydantic import Field

from gitpack_schemas.base import DocumentSchema
from gitpack_schemas.primitives import BASELINE_MODULE_VERSION, Timestamp


class ManifestModuleEntry(DocumentSchema):
    """Manifest record for one module; paths are manifest-relative."""

    chunks: dict[str, str] = Field(
        default_factory=dict, description="Chunk name to relative output path"
    )
    assets: list[str] = Field(
        default_factory=list, description="Relative output file paths"
    )
    version: int = Field(
        BASELINE_MODULE_VERSION, ge=0, description="Per-module build version"
    )
    commit: str | None = Field(None, description="Revision the module was built at")


class AssetManifest(DocumentSchema):
    """Versioned index of built module outputs."""

    version: int = Field(0, ge=0, description="Whole-manifest version")
    modified: Timestamp | None = Field(
        None, description="ISO-8601 timestamp of the last change"
    )
    modules: dict[str, ManifestModuleEntry] = Field(
        default_factory=dict, description="Module name to manifest entry"
    )
