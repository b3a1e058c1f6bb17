"""Resolved module descriptors and builder outputs."""

from __future__ import annotations

from pydantic import Field

from gitpack_schemas.base import BaseSchema, FrozenSchema
from gitpack_schemas.config import BuilderConfig
from gitpack_schemas.primitives import ModuleName


class ModuleDescriptor(FrozenSchema):
    """Fully resolved module ready for change detection and building."""

    name: ModuleName = Field(
        ..., description="Module path relative to the context directory"
    )
    watch: list[str] = Field(
        default_factory=list, description="Dependency paths (global then module)"
    )
    builder: BuilderConfig = Field(
        ..., description="Builder settings with absolute launch and cwd"
    )


class ModuleAsset(FrozenSchema):
    """Outputs reported by a builder for a single module.

    All paths are absolute.
    """

    name: ModuleName = Field(..., description="Module name")
    chunks: dict[str, str] = Field(
        default_factory=dict, description="Chunk name to absolute output path"
    )
    assets: list[str] = Field(
        default_factory=list, description="Absolute output file paths"
    )


class AssetReport(BaseSchema):
    """JSON document a build script writes to describe its outputs.

    Paths may be relative to the builder working directory.
    """

    chunks: dict[str, str] = Field(
        default_factory=dict, description="Chunk name to output path"
    )
    assets: list[str] = Field(default_factory=list, description="Output file paths")
