"""Log sinks for build and command events.

Build runs emit ``LogEntry`` records (``build_started``, ``module_completed``,
``manifest_written`` and so on). Sinks decide where those records end up: the
per-run JSONL file, stderr next to the CLI's JSON response on stdout, or
nowhere.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import TextIO

from gitpack_core.ports.orchestrator import LogSinkProtocol
from gitpack_core.ports.storage import LogStoreProtocol
from gitpack_schemas.config import LoggingConfig, LogSinkConfig
from gitpack_schemas.logs import LogEntry
from gitpack_schemas.primitives import LogLevel, LogSinkType

_LEVEL_RANK = {level.value: rank for rank, level in enumerate(LogLevel)}


class StorageLogSink(LogSinkProtocol):
    """Append build events to the run's JSONL file in the log store."""

    def __init__(self, store: LogStoreProtocol) -> None:
        """Initialize the sink with the store that owns the run log files."""
        self._store = store

    async def emit_log(self, entry: LogEntry) -> None:
        """Append the entry to ``<logs_dir>/<run_id>.jsonl``."""
        await self._store.append_log(entry)


class CompositeLogSink(LogSinkProtocol):
    """Send each build event to several sinks in configuration order."""

    def __init__(self, sinks: Iterable[LogSinkProtocol]) -> None:
        self._sinks = list(sinks)

    async def emit_log(self, entry: LogEntry) -> None:
        for sink in self._sinks:
            await sink.emit_log(entry)


class ConsoleLogSink(LogSinkProtocol):
    """Write build events as JSONL to stderr.

    Stdout is reserved for the command's ``ApiResponse`` document, so events
    go to stderr unless another stream is given.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        """Initialize the console sink.

        Args:
            stream: Destination for event lines; stderr when omitted.
        """
        self._stream = stream or sys.stderr

    async def emit_log(self, entry: LogEntry) -> None:
        payload = entry.model_dump_json(exclude_none=False)
        self._stream.write(payload + "\n")
        self._stream.flush()


class LevelFilterLogSink(LogSinkProtocol):
    """Forward only events at or above a minimum level."""

    def __init__(self, sink: LogSinkProtocol, level: LogLevel) -> None:
        """Initialize the filter.

        Args:
            sink: Sink receiving events that pass the threshold.
            level: Lowest level forwarded.
        """
        self._sink = sink
        self._threshold = _LEVEL_RANK[str(level)]

    async def emit_log(self, entry: LogEntry) -> None:
        if _LEVEL_RANK[str(entry.level)] >= self._threshold:
            await self._sink.emit_log(entry)


class NoopLogSink(LogSinkProtocol):
    """Discard every build event."""

    async def emit_log(self, entry: LogEntry) -> None:
        return None


class InMemoryLogSink(LogSinkProtocol):
    """Collect build events in memory, mainly for embedding and tests."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def emit_log(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self) -> list[str]:
        """Return recorded event names in emission order.

        Returns:
            list[str]: Event names such as ``module_started``.
        """
        return [str(entry.event) for entry in self.entries]


def build_log_sink(
    logging_config: LoggingConfig,
    log_store: LogStoreProtocol,
    *,
    stream: TextIO | None = None,
) -> LogSinkProtocol:
    """Build the sink a build run or CLI command reports its events to.

    Args:
        logging_config: The ``[logging]`` table of the build configuration.
        log_store: Store backing ``file`` sinks.
        stream: Stream for ``console`` sinks; stderr when omitted.

    Returns:
        LogSinkProtocol: A single sink, or a composite when several are
            configured.

    Raises:
        ValueError: If an unsupported log sink type is configured.
    """
    sinks = [
        _build_sink(sink_config, log_store, stream)
        for sink_config in logging_config.sinks
    ]
    if len(sinks) == 1:
        return sinks[0]
    return CompositeLogSink(sinks)


def _build_sink(
    sink_config: LogSinkConfig,
    log_store: LogStoreProtocol,
    stream: TextIO | None,
) -> LogSinkProtocol:
    sink_type = LogSinkType(sink_config.type)
    sink: LogSinkProtocol
    if sink_type == LogSinkType.FILE:
        sink = StorageLogSink(log_store)
    elif sink_type == LogSinkType.CONSOLE:
        sink = ConsoleLogSink(stream=stream)
    elif sink_type == LogSinkType.NOOP:
        return NoopLogSink()
    else:
        raise ValueError(f"Unsupported log sink type: {sink_config.type}")

    level = LogLevel(sink_config.level)
    if level == LogLevel.DEBUG:
        return sink
    return LevelFilterLogSink(sink, level)
