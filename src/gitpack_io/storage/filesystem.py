"""Filesystem-backed storage adapters."""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from gitpack_core.manifest import default_manifest
from gitpack_core.ports.storage import (
    LogStoreProtocol,
    ManifestStoreProtocol,
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
)
from gitpack_schemas.base import BaseSchema
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.manifest import AssetManifest
from gitpack_schemas.primitives import RunId


class FileSystemManifestStore(ManifestStoreProtocol):
    """Manifest store backed by a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        """Initialize the manifest store.

        Args:
            path: Manifest file path; resolved to an absolute path.
        """
        self._path = Path(path).resolve()

    @property
    def path(self) -> str:
        """Absolute manifest file path."""
        return str(self._path)

    async def exists(self) -> bool:
        """Report whether the manifest file exists.

        Returns:
            bool: True when the file is present.
        """
        return await asyncio.to_thread(self._path.exists)

    async def read_manifest(self) -> AssetManifest:
        """Read the manifest, seeding the default template when absent.

        Returns:
            AssetManifest: Parsed manifest.

        Raises:
            StorageError: If the file cannot be read, parsed or created.
        """
        try:
            return await asyncio.to_thread(_read_manifest_file, self._path)
        except FileNotFoundError:
            manifest = default_manifest()
            await self.write_manifest(manifest)
            return manifest
        except ValidationError as exc:
            if _is_json_error(exc):
                raise self._error(
                    StorageErrorCode.SERIALIZATION_ERROR,
                    f"Manifest is not valid JSON: {exc}",
                    "read_manifest",
                ) from exc
            raise self._error(
                StorageErrorCode.VALIDATION_ERROR,
                f"Manifest failed validation: {exc}",
                "read_manifest",
            ) from exc
        except OSError as exc:
            raise self._error(
                StorageErrorCode.IO_ERROR, str(exc), "read_manifest"
            ) from exc

    async def load_manifest(self) -> AssetManifest | None:
        """Read the manifest without creating it.

        Returns:
            AssetManifest | None: Parsed manifest, or None when absent.

        Raises:
            StorageError: If the file exists but cannot be read or parsed.
        """
        if not await self.exists():
            return None
        return await self.read_manifest()

    async def write_manifest(self, manifest: AssetManifest) -> None:
        """Overwrite the manifest file with pretty-printed JSON.

        Raises:
            StorageError: If the manifest cannot be written.
        """
        try:
            await asyncio.to_thread(_write_manifest_file, self._path, manifest)
        except OSError as exc:
            raise self._error(
                StorageErrorCode.IO_ERROR, str(exc), "write_manifest"
            ) from exc

    def _error(
        self, code: StorageErrorCode, message: str, operation: str
    ) -> StorageError:
        return StorageError(
            StorageErrorInfo(
                code=code,
                message=message or code.value,
                details=StorageErrorDetails(operation=operation, path=self.path),
            )
        )


class FileSystemLogStore(LogStoreProtocol):
    """Filesystem-backed JSONL log store."""

    def __init__(self, logs_dir: str | Path) -> None:
        """Initialize the log store."""
        self._logs_dir = Path(logs_dir)

    async def append_log(self, entry: LogEntry) -> None:
        """Append a single log entry.

        Raises:
            StorageError: If the log entry cannot be written.
        """
        path = self.log_path(entry.run_id)
        try:
            await asyncio.to_thread(_append_jsonl, path, [entry])
        except OSError as exc:
            raise StorageError(
                StorageErrorInfo(
                    code=StorageErrorCode.IO_ERROR,
                    message=str(exc),
                    details=StorageErrorDetails(
                        operation="append_log",
                        path=str(path),
                    ),
                )
            ) from exc

    def log_path(self, run_id: RunId) -> Path:
        """Return the JSONL file used for a run.

        Returns:
            Path: Log file path.
        """
        return self._logs_dir / f"{run_id}.jsonl"


def _read_manifest_file(path: Path) -> AssetManifest:
    payload = path.read_text(encoding="utf-8")
    return AssetManifest.model_validate_json(payload, strict=False)


def _is_json_error(exc: ValidationError) -> bool:
    return any(error["type"] == "json_invalid" for error in exc.errors())


def _write_manifest_file(path: Path, manifest: AssetManifest) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = manifest.model_dump_json(indent=2) + "\n"
    # Write beside the target then swap so a failed write keeps the old file.
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _append_jsonl(path: Path, payload: Sequence[BaseSchema]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as handle:
        handle.writelines(
            item.model_dump_json(exclude_none=False) + "\n" for item in payload
        )
