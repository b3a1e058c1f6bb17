"""Bundled default documents for configuration and manifests."""

from __future__ import annotations

from gitpack_schemas.primitives import MODULE_NAME_TOKEN, JsonValue

DEFAULT_CONFIG_FILENAME = "gitpack.toml"

DEFAULT_BUILD_OPTIONS: dict[str, JsonValue] = {
    "modules": [],
    "watch": [],
    "assets": None,
    "force": False,
    "builder": {
        "name": "command",
        "force": False,
        "launch": f"{MODULE_NAME_TOKEN}/build.py",
        "cwd": MODULE_NAME_TOKEN,
        "env": {},
        "exec_args": [],
        "stdio": "inherit",
        "silent": False,
    },
    "logging": {
        "sinks": [{"type": "console"}],
        "logs_dir": ".gitpack/logs",
    },
}

DEFAULT_MANIFEST: dict[str, JsonValue] = {
    "version": 0,
    "modified": None,
    "modules": {},
}
