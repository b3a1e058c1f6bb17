"""Storage adapters for the manifest and build logs."""

from gitpack_io.storage.filesystem import FileSystemLogStore, FileSystemManifestStore
from gitpack_io.storage.log_sink import (
    CompositeLogSink,
    ConsoleLogSink,
    InMemoryLogSink,
    LevelFilterLogSink,
    NoopLogSink,
    StorageLogSink,
    build_log_sink,
)

__all__ = [
    "CompositeLogSink",
    "ConsoleLogSink",
    "FileSystemLogStore",
    "FileSystemManifestStore",
    "InMemoryLogSink",
    "LevelFilterLogSink",
    "NoopLogSink",
    "StorageLogSink",
    "build_log_sink",
]
