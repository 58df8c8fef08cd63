"""
Diagnostic sinks: where the engine reports problems it recovers from.

The host usually passes its own build console; LoggerSink and RecordingSink
cover the library's own logging and audits/tests.
"""

import threading
from dataclasses import dataclass
from typing import Protocol

from buildretry.utils.logging import get_logger

logger = get_logger("buildretry.diagnostics")


class DiagnosticSink(Protocol):
    """Receives recoverable errors, such as a log that could not be scanned."""

    def error(self, message: str, exc: BaseException | None = None) -> None: ...


class LoggerSink:
    """Sink that writes diagnostics to the buildretry logger."""

    def __init__(self, name: str = "buildretry.diagnostics"):
        self._logger = get_logger(name)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(f"{message}: {exc}", exc_info=exc)
        else:
            self._logger.error(message)


@dataclass(frozen=True)
class Diagnostic:
    message: str
    exception_type: str | None = None
    exception_message: str | None = None


class RecordingSink:
    """Thread-safe sink that keeps every diagnostic for later inspection."""

    def __init__(self):
        self._records: list[Diagnostic] = []
        self._lock = threading.Lock()

    def error(self, message: str, exc: BaseException | None = None) -> None:
        record = Diagnostic(
            message=message,
            exception_type=type(exc).__name__ if exc is not None else None,
            exception_message=str(exc) if exc is not None else None,
        )
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> list[Diagnostic]:
        with self._lock:
            return list(self._records)

    @property
    def messages(self) -> list[str]:
        return [r.message for r in self.records]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


#: Default sink when the caller supplies none
DEFAULT_SINK = LoggerSink()
