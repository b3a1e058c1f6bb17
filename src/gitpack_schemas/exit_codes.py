"""CLI exit code taxonomy and error-to-exit-code registry.

Exit code ranges:
- 0: Success
- 10-19: Client/input errors (config, validation)
- 20-29: Domain/processing errors (orchestration, builder, vcs, storage)
- 99: Unexpected runtime errors
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """CLI exit codes by failure category."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    VALIDATION_ERROR = 11
    ORCHESTRATION_ERROR = 20
    BUILDER_ERROR = 21
    VCS_ERROR = 22
    STORAGE_ERROR = 23
    RUNTIME_ERROR = 99


# Domain error codes are qualified with a domain prefix to avoid collisions
# (e.g. "vcs.command_failed" vs "builder.execution_failed").
ERROR_CODE_TO_EXIT_CODE: dict[str, ExitCode] = {
    "config_error": ExitCode.CONFIG_ERROR,
    "validation_error": ExitCode.VALIDATION_ERROR,
    "runtime_error": ExitCode.RUNTIME_ERROR,
    "orchestration.invalid_config": ExitCode.CONFIG_ERROR,
    "orchestration.change_detection_failed": ExitCode.VCS_ERROR,
    "orchestration.invalid_builder_output": ExitCode.BUILDER_ERROR,
    "builder.not_registered": ExitCode.CONFIG_ERROR,
    "builder.execution_failed": ExitCode.BUILDER_ERROR,
    "builder.timeout": ExitCode.BUILDER_ERROR,
    "builder.invalid_report": ExitCode.BUILDER_ERROR,
    "vcs.not_a_repository": ExitCode.VCS_ERROR,
    "vcs.command_failed": ExitCode.VCS_ERROR,
    "storage.not_found": ExitCode.STORAGE_ERROR,
    "storage.io_error": ExitCode.STORAGE_ERROR,
    "storage.serialization_error": ExitCode.STORAGE_ERROR,
    "storage.validation_error": ExitCode.STORAGE_ERROR,
}


def resolve_exit_code(error_code: str, *, domain: str | None = None) -> ExitCode:
    """Resolve an error code string to its ExitCode.

    Args:
        error_code: The error code string (e.g. "validation_error", "timeout").
        domain: Optional domain prefix (e.g. "builder", "storage"). When
            provided, the lookup uses ``"{domain}.{error_code}"`` first,
            falling back to an unqualified lookup.

    Returns:
        The matching ExitCode, or RUNTIME_ERROR if no mapping is found.
    """
    if domain:
        qualified = f"{domain}.{error_code}"
        if qualified in ERROR_CODE_TO_EXIT_CODE:
            return ERROR_CODE_TO_EXIT_CODE[qualified]

    if error_code in ERROR_CODE_TO_EXIT_CODE:
        return ERROR_CODE_TO_EXIT_CODE[error_code]

    return ExitCode.RUNTIME_ERROR
