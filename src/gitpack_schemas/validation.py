"""Validation entrypoints for raw payloads."""

from __future__ import annotations

from gitpack_schemas.config import BuildConfig
from gitpack_schemas.manifest import AssetManifest
from gitpack_schemas.primitives import JsonValue


def validate_build_config(payload: dict[str, JsonValue]) -> BuildConfig:
    """Validate build configuration payload.

    Args:
        payload: Raw build configuration payload.

    Returns:
        BuildConfig: Validated build configuration.
    """
    return BuildConfig.model_validate(payload, strict=False)


def validate_manifest(payload: dict[str, JsonValue]) -> AssetManifest:
    """Validate an asset manifest payload.

    Args:
        payload: Raw manifest payload.

    Returns:
        AssetManifest: Validated manifest.
    """
    return AssetManifest.model_validate(payload, strict=False)
