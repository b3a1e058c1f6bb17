"""CLI entry point - thin adapter over gitpack-core."""

from __future__ import annotations

import asyncio
import tomllib
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar
from uuid import uuid4

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich import print as rprint

from gitpack_core import VERSION, BuildOrchestrator, build_config
from gitpack_core.ports.builder import BuilderError
from gitpack_core.ports.orchestrator import LogSinkProtocol, OrchestrationError
from gitpack_core.ports.storage import (
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
)
from gitpack_core.ports.vcs import VcsError
from gitpack_io.builders import build_default_registry
from gitpack_io.storage.filesystem import FileSystemLogStore, FileSystemManifestStore
from gitpack_io.storage.log_sink import build_log_sink
from gitpack_io.vcs.git import GitVcs
from gitpack_schemas.config import BuildConfig
from gitpack_schemas.defaults import DEFAULT_CONFIG_FILENAME
from gitpack_schemas.events import (
    CommandCompletedData,
    CommandEvent,
    CommandFailedData,
    CommandStartedData,
)
from gitpack_schemas.exit_codes import ExitCode, resolve_exit_code
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.manifest import AssetManifest
from gitpack_schemas.primitives import JsonValue, LogLevel, RunId
from gitpack_schemas.responses import (
    ApiResponse,
    BuilderListResult,
    BuildResult,
    ErrorResponse,
    MetaInfo,
)

ResponseT = TypeVar("ResponseT")

CONFIG_OPTION = typer.Option(
    Path(DEFAULT_CONFIG_FILENAME),
    "--config",
    "-c",
    help="Path to gitpack TOML config",
)
FORCE_OPTION = typer.Option(
    False, "--force", "-f", help="Rebuild every module regardless of changes"
)
PARALLEL_OPTION = typer.Option(
    None, "--parallel", "-p", min=1, help="Maximum concurrent module builds"
)

app = typer.Typer(
    help="Change-aware multi-module build orchestrator",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """Gitpack CLI."""


@app.command()
def version() -> None:
    """Display version information."""
    rprint(f"[bold]gitpack[/bold] v{VERSION}")


@app.command()
def build(
    config_path: Path = CONFIG_OPTION,
    force: bool = FORCE_OPTION,
    parallel: int | None = PARALLEL_OPTION,
) -> None:
    """Rebuild changed modules and update the asset manifest.

    Raises:
        typer.Exit: With the mapped exit code when the build fails.
    """
    command_run_id = uuid4()
    log_sink: LogSinkProtocol | None = None
    try:
        overrides: dict[str, JsonValue] = {}
        if force:
            overrides["force"] = True
        if parallel is not None:
            overrides["parallel"] = parallel
        config = _load_build_config(config_path, overrides)
        context_dir = _context_dir(config_path)
        log_sink = _build_command_log_sink(config, context_dir)
        args: dict[str, JsonValue] = {
            "config_path": str(config_path),
            "force": force,
            "parallel": parallel,
        }
        _emit_command_log_sync(
            log_sink,
            _build_command_started_log(
                timestamp=_now_timestamp(),
                run_id=command_run_id,
                command="build",
                args=args,
            ),
        )
        orchestrator = BuildOrchestrator(
            config,
            context_dir,
            vcs=GitVcs(),
            registry=build_default_registry(),
            manifest_store=_build_manifest_store(config, context_dir),
            log_sink=log_sink,
            run_id=command_run_id,
        )
        report = asyncio.run(orchestrator.run())
        _emit_command_log_sync(
            log_sink,
            _build_command_completed_log(
                timestamp=_now_timestamp(),
                run_id=command_run_id,
                command="build",
            ),
        )
        response: ApiResponse[BuildResult] = ApiResponse(
            data=BuildResult(
                run_id=report.run_id,
                built=report.built,
                skipped=report.skipped,
                manifest_written=report.manifest_written,
                manifest=report.manifest,
            ),
            error=None,
            meta=MetaInfo(timestamp=_now_timestamp(), run_id=command_run_id),
        )
        exit_code = ExitCode.SUCCESS
    except Exception as exc:
        error = _error_from_exception(exc)
        if log_sink is not None:
            _emit_command_log_sync(
                log_sink,
                _build_command_failed_log(
                    timestamp=_now_timestamp(),
                    run_id=command_run_id,
                    command="build",
                    error=error,
                ),
            )
        response = _error_response(error, run_id=command_run_id)
        exit_code = _exit_code_for_exception(exc, error)
    print(response.model_dump_json())
    if exit_code != ExitCode.SUCCESS:
        raise typer.Exit(code=int(exit_code))


@app.command()
def manifest(
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Print the persisted asset manifest without modifying it.

    Raises:
        typer.Exit: With the mapped exit code when the manifest is unavailable.
    """
    try:
        config = _load_build_config(config_path, {})
        store = _build_manifest_store(config, _context_dir(config_path))
        if store is None:
            raise _ConfigError("No assets path configured")
        result = asyncio.run(_read_manifest_async(store))
        response: ApiResponse[AssetManifest] = ApiResponse(
            data=result, error=None, meta=MetaInfo(timestamp=_now_timestamp())
        )
        exit_code = ExitCode.SUCCESS
    except Exception as exc:
        error = _error_from_exception(exc)
        response = _error_response(error)
        exit_code = _exit_code_for_exception(exc, error)
    print(response.model_dump_json())
    if exit_code != ExitCode.SUCCESS:
        raise typer.Exit(code=int(exit_code))


@app.command()
def builders() -> None:
    """List registered builder plugins."""
    registry = build_default_registry()
    response: ApiResponse[BuilderListResult] = ApiResponse(
        data=BuilderListResult(builders=registry.list_builders()),
        error=None,
        meta=MetaInfo(timestamp=_now_timestamp()),
    )
    print(response.model_dump_json())


class _ConfigError(Exception):
    """Raised for CLI configuration issues."""


def _now_timestamp() -> str:
    timestamp = datetime.now(UTC).isoformat()
    return timestamp.replace("+00:00", "Z")


def _context_dir(config_path: Path) -> Path:
    return config_path.resolve().parent


def _load_build_config(
    config_path: Path, overrides: dict[str, JsonValue]
) -> BuildConfig:
    _load_dotenv(config_path)
    if not config_path.exists():
        raise _ConfigError(f"Config not found: {config_path}")
    try:
        with open(config_path, "rb") as handle:
            payload: dict[str, JsonValue] = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise _ConfigError(f"Failed to read config: {exc}") from exc
    if not isinstance(payload, dict):
        raise _ConfigError("Config root must be a TOML table")
    return build_config({**payload, **overrides})


def _load_dotenv(config_path: Path) -> None:
    env_path = config_path.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)


def _build_manifest_store(
    config: BuildConfig, context_dir: Path
) -> FileSystemManifestStore | None:
    if config.assets is None:
        return None
    return FileSystemManifestStore(_resolve_path(Path(config.assets), context_dir))


def _build_command_log_sink(config: BuildConfig, context_dir: Path) -> LogSinkProtocol:
    logs_dir = _resolve_path(Path(config.logging.logs_dir), context_dir)
    return build_log_sink(config.logging, FileSystemLogStore(logs_dir=logs_dir))


def _resolve_path(path: Path, base_dir: Path) -> Path:
    resolved = path if path.is_absolute() else base_dir / path
    return resolved.resolve()


async def _read_manifest_async(store: FileSystemManifestStore) -> AssetManifest:
    result = await store.load_manifest()
    if result is None:
        raise StorageError(
            StorageErrorInfo(
                code=StorageErrorCode.NOT_FOUND,
                message=f"Manifest not found: {store.path}",
                details=StorageErrorDetails(operation="read_manifest", path=store.path),
            )
        )
    return result


async def _emit_command_log(log_sink: LogSinkProtocol, entry: LogEntry) -> None:
    await log_sink.emit_log(entry)


def _emit_command_log_sync(log_sink: LogSinkProtocol, entry: LogEntry) -> None:
    asyncio.run(_emit_command_log(log_sink, entry))


def _build_command_started_log(
    *,
    timestamp: str,
    run_id: RunId,
    command: str,
    args: dict[str, JsonValue] | None,
) -> LogEntry:
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        event=CommandEvent.STARTED,
        run_id=run_id,
        module=None,
        message="Command started",
        data=CommandStartedData(command=command, args=args).model_dump(
            exclude_none=True
        ),
    )


def _build_command_completed_log(
    *,
    timestamp: str,
    run_id: RunId,
    command: str,
) -> LogEntry:
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        event=CommandEvent.COMPLETED,
        run_id=run_id,
        module=None,
        message="Command completed",
        data=CommandCompletedData(command=command).model_dump(exclude_none=True),
    )


def _build_command_failed_log(
    *,
    timestamp: str,
    run_id: RunId,
    command: str,
    error: ErrorResponse,
) -> LogEntry:
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.ERROR,
        event=CommandEvent.FAILED,
        run_id=run_id,
        module=None,
        message="Command failed",
        data=CommandFailedData(
            command=command,
            error_code=error.code,
            error_message=error.message,
        ).model_dump(exclude_none=True),
    )


def _error_response(
    error: ErrorResponse, *, run_id: RunId | None = None
) -> ApiResponse[ResponseT]:
    return ApiResponse(
        data=None,
        error=error,
        meta=MetaInfo(timestamp=_now_timestamp(), run_id=run_id),
    )


def _error_from_exception(exc: Exception) -> ErrorResponse:
    if isinstance(exc, (OrchestrationError, BuilderError, VcsError, StorageError)):
        return exc.info.to_error_response()
    if isinstance(exc, ValidationError):
        message = "Config validation failed"
        errors = exc.errors()
        if errors:
            first = errors[0]
            loc = first.get("loc", [])
            label = ".".join(str(part) for part in loc) if loc else ""
            detail = first.get("msg", "")
            if label and detail:
                message = f"Config validation failed: {label} - {detail}"
            elif detail:
                message = f"Config validation failed: {detail}"
        return ErrorResponse(code="validation_error", message=message, details=None)
    if isinstance(exc, _ConfigError):
        return ErrorResponse(code="config_error", message=str(exc), details=None)
    if isinstance(exc, ValueError):
        return ErrorResponse(code="validation_error", message=str(exc), details=None)
    message = str(exc) or type(exc).__name__
    return ErrorResponse(code="runtime_error", message=message, details=None)


def _exit_code_for_exception(exc: Exception, error: ErrorResponse) -> ExitCode:
    domain: str | None = None
    if isinstance(exc, OrchestrationError):
        domain = "orchestration"
    elif isinstance(exc, BuilderError):
        domain = "builder"
    elif isinstance(exc, VcsError):
        domain = "vcs"
    elif isinstance(exc, StorageError):
        domain = "storage"
    return resolve_exit_code(error.code, domain=domain)


if __name__ == "__main__":
    app()
