"""Pluggable output sinks for human-readable match traces.

Sinks are a side channel: a failing sink is logged and skipped, it never
affects matching. `BufferedOutput` keeps lines in memory so a test runner
(or a test) can attach them to its own report.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Iterable, List, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Output(Protocol):
    def write_line(self, line: str) -> None: ...


class ConsoleOutput:
    def __init__(self, stream=None) -> None:  # type: ignore[no-untyped-def]
        self.stream = stream

    def write_line(self, line: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()


class LoggingOutput:
    def __init__(self, logger_name: str = "pactmock.trace", level: int = logging.INFO) -> None:
        self.logger = logging.getLogger(logger_name)
        self.level = level

    def write_line(self, line: str) -> None:
        self.logger.log(self.level, "%s", line)


class BufferedOutput:
    def __init__(self) -> None:
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def write_line(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    @property
    def lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()


def emit(outputs: Iterable[Output], line: str) -> None:
    for sink in outputs:
        try:
            sink.write_line(line)
        except Exception:
            logger.error("output_sink_failed sink=%s", type(sink).__name__, exc_info=True)


__all__ = ["Output", "ConsoleOutput", "LoggingOutput", "BufferedOutput", "emit"]
