"""Configuration inheritance and module normalization."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from gitpack_core.ports.orchestrator import (
    OrchestrationError,
    OrchestrationErrorCode,
    OrchestrationErrorDetails,
    OrchestrationErrorInfo,
)
from gitpack_schemas.config import BuildConfig, BuilderConfig, ModuleConfig
from gitpack_schemas.defaults import DEFAULT_BUILD_OPTIONS
from gitpack_schemas.modules import ModuleDescriptor
from gitpack_schemas.primitives import MODULE_NAME_TOKEN, JsonValue
from gitpack_schemas.validation import validate_build_config


def merge_defaults(*layers: Mapping[str, JsonValue]) -> dict[str, JsonValue]:
    """Merge configuration layers, earlier layers winning.

    Mappings are merged recursively. Lists and scalars are taken whole from
    the first layer that defines the key. Inputs are never mutated.

    Args:
        layers: Mappings ordered from highest to lowest precedence.

    Returns:
        dict[str, JsonValue]: New merged mapping.
    """
    merged: dict[str, JsonValue] = {}
    for layer in layers:
        for key, value in layer.items():
            if key not in merged:
                merged[key] = _copy_value(value)
                continue
            current = merged[key]
            if isinstance(current, dict) and isinstance(value, Mapping):
                merged[key] = merge_defaults(current, value)
    return merged


def _copy_value(value: JsonValue) -> JsonValue:
    if isinstance(value, Mapping):
        return {key: _copy_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_value(item) for item in value]
    return value


def build_config(options: Mapping[str, JsonValue] | None = None) -> BuildConfig:
    """Merge caller options over the bundled defaults and validate.

    Args:
        options: Raw caller options (e.g. a parsed TOML document).

    Returns:
        BuildConfig: Frozen build configuration.
    """
    return validate_build_config(merge_defaults(options or {}, DEFAULT_BUILD_OPTIONS))


def normalize_modules(
    config: BuildConfig, context_dir: Path
) -> list[ModuleDescriptor]:
    """Expand module entries into resolved, frozen descriptors.

    Shorthand strings become full entries; each module inherits the global
    watch list (its own extras appended) and the global builder settings
    (its own keys winning). Placeholders in ``launch``/``cwd`` are replaced
    with the module name and resolved against ``context_dir``.

    Args:
        config: Validated build configuration.
        context_dir: Absolute working directory of the build.

    Returns:
        list[ModuleDescriptor]: Descriptors in configuration order.

    Raises:
        OrchestrationError: If a module entry is invalid or names repeat.
    """
    base_builder: dict[str, JsonValue] = config.builder.model_dump()
    descriptors: list[ModuleDescriptor] = []
    seen: set[str] = set()
    for key, entry in config.module_entries():
        module = _expand_entry(key, entry, config)
        if module.name in seen:
            raise _invalid_module(module.name, "duplicate module name")
        seen.add(module.name)
        descriptors.append(
            _resolve_descriptor(module, base_builder, config.watch, context_dir)
        )
    return descriptors


def _expand_entry(
    key: str, entry: str | ModuleConfig, config: BuildConfig
) -> ModuleConfig:
    if isinstance(entry, str):
        return ModuleConfig(name=entry)
    if entry.name is not None:
        return entry
    if isinstance(config.modules, dict):
        return entry.model_copy(update={"name": key})
    raise _invalid_module(None, f"module entry {key} has no name")


def _resolve_descriptor(
    module: ModuleConfig,
    base_builder: dict[str, JsonValue],
    global_watch: list[str],
    context_dir: Path,
) -> ModuleDescriptor:
    name = module.name or ""
    watch = list(dict.fromkeys([*global_watch, *module.watch]))
    try:
        builder = BuilderConfig.model_validate(
            merge_defaults(module.builder, base_builder), strict=False
        )
    except ValidationError as exc:
        raise _invalid_module(name, f"invalid builder settings: {exc}") from exc
    builder = builder.model_copy(
        update={
            "launch": _resolve_path(builder.launch, name, context_dir),
            "cwd": _resolve_path(builder.cwd, name, context_dir),
        }
    )
    return ModuleDescriptor(name=name, watch=watch, builder=builder)


def _resolve_path(template: str, module_name: str, context_dir: Path) -> str:
    path = Path(template.replace(MODULE_NAME_TOKEN, module_name))
    if not path.is_absolute():
        path = context_dir / path
    return str(path.resolve())


def _invalid_module(module: str | None, reason: str) -> OrchestrationError:
    return OrchestrationError(
        OrchestrationErrorInfo(
            code=OrchestrationErrorCode.INVALID_CONFIG,
            message=f"Invalid module configuration: {reason}",
            details=OrchestrationErrorDetails(
                module=module,
                operation="normalize_modules",
                reason=reason,
            ),
        )
    )
