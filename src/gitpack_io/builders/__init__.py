"""Builder plugins and the default registry."""

from gitpack_core.builders import BuilderRegistry
from gitpack_io.builders.command import (
    ASSET_REPORT_ENV,
    MODULE_NAME_ENV,
    CommandBuilder,
    build_command_builder,
)


def build_default_registry() -> BuilderRegistry:
    """Create a registry with the bundled builders registered.

    Returns:
        BuilderRegistry: Registry containing the ``command`` builder.
    """
    registry = BuilderRegistry()
    registry.register(CommandBuilder.name, build_command_builder)
    return registry


__all__ = [
    "ASSET_REPORT_ENV",
    "MODULE_NAME_ENV",
    "CommandBuilder",
    "build_command_builder",
    "build_default_registry",
]
