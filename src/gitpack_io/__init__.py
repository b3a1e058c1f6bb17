"""gitpack-io: filesystem, git and process adapters."""

from gitpack_io.builders import (
    CommandBuilder,
    build_command_builder,
    build_default_registry,
)
from gitpack_io.storage import (
    CompositeLogSink,
    ConsoleLogSink,
    FileSystemLogStore,
    FileSystemManifestStore,
    InMemoryLogSink,
    LevelFilterLogSink,
    NoopLogSink,
    StorageLogSink,
    build_log_sink,
)
from gitpack_io.vcs import GitVcs

__version__ = "0.1.0"

__all__ = [
    "CommandBuilder",
    "CompositeLogSink",
    "ConsoleLogSink",
    "FileSystemLogStore",
    "FileSystemManifestStore",
    "GitVcs",
    "InMemoryLogSink",
    "LevelFilterLogSink",
    "NoopLogSink",
    "StorageLogSink",
    "build_command_builder",
    "build_default_registry",
    "build_log_sink",
]
