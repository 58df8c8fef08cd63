"""
Log pattern scanning for gated retries.

A gated retry only happens when the build log contains the gating pattern.
The log is streamed line by line and never loaded whole.
"""

import re
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path
from typing import Iterator, TextIO

from buildretry.core.diagnostics import DEFAULT_SINK, DiagnosticSink
from buildretry.core.results import LogHandle, LogSource
from buildretry.exceptions import InvalidPatternError, LogUnavailableError
from buildretry.utils.logging import get_logger

logger = get_logger("buildretry.scanner")

#: Message reported to the diagnostic sink when the gate is bypassed
SCAN_ERROR_MESSAGE = "error while parsing logs for retry - forcing rebuild"


class GateResult(StrEnum):
    """Outcome of the log gate."""

    PASSED = "passed"  # pattern found, or no pattern configured
    NOT_FOUND = "not_found"  # pattern absent, do not retry
    SCAN_ERROR = "scan_error"  # log unreadable, treated as passed


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a gating pattern.

    Raises:
        InvalidPatternError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e


@contextmanager
def _open_log(log: LogHandle) -> Iterator[TextIO]:
    if log is None:
        raise LogUnavailableError("<no log>")
    if isinstance(log, (str, Path)):
        try:
            # Assume default encoding and text logs; keep reading past bad bytes
            stream = open(log, encoding="utf-8", errors="replace")
        except OSError as e:
            raise LogUnavailableError(log, cause=e) from e
    elif isinstance(log, LogSource):
        try:
            stream = log.open()
        except LogUnavailableError:
            raise
        except Exception as e:
            # Host log sources can fail in arbitrary ways
            raise LogUnavailableError(log, cause=e) from e
    else:
        raise LogUnavailableError(log, cause=TypeError(f"unsupported log handle {type(log).__name__}"))
    try:
        yield stream
    finally:
        stream.close()


class LogPatternScanner:
    """
    Searches a build log for a regular expression.

    Examples:
        >>> scanner = LogPatternScanner()
        >>> scanner.contains("build.log", r"Connection (reset|refused)")
        True
    """

    def contains(self, log: LogHandle, pattern: str | re.Pattern[str]) -> bool:
        """
        Check whether any line of the log matches ``pattern``.

        Matching uses ``search`` semantics: not anchored, anywhere in a line.

        Args:
            log: Path to the log, a LogSource, or None
            pattern: Regular expression (string or compiled)

        Returns:
            True on the first matching line, False at end of log

        Raises:
            InvalidPatternError: If ``pattern`` does not compile
            LogUnavailableError: If the log cannot be opened or read
        """
        compiled = compile_pattern(pattern) if isinstance(pattern, str) else pattern

        with _open_log(log) as stream:
            try:
                for line in stream:
                    if compiled.search(line):
                        return True
            except (OSError, ValueError, TypeError) as e:
                # ValueError: decoding failures, closed streams. TypeError: binary streams
                raise LogUnavailableError(log, cause=e) from e
        return False

    def gate(
        self,
        log: LogHandle,
        pattern: str | re.Pattern[str] | None,
        sink: DiagnosticSink | None = None,
    ) -> GateResult:
        """
        Evaluate the log gate, mapping scan failures to SCAN_ERROR.

        An empty or missing pattern disables the gate (PASSED). A log that
        cannot be read is reported to ``sink`` and yields SCAN_ERROR, which
        callers treat as passed. An invalid pattern is a configuration error
        and propagates.
        """
        if pattern is None or (isinstance(pattern, str) and not pattern):
            return GateResult.PASSED

        try:
            found = self.contains(log, pattern)
        except LogUnavailableError as e:
            logger.warning(f"Gate bypassed, log could not be scanned: {e}")
            (sink if sink is not None else DEFAULT_SINK).error(SCAN_ERROR_MESSAGE, e)
            return GateResult.SCAN_ERROR

        if not found:
            logger.debug(f"Gating pattern not found in log: {getattr(pattern, 'pattern', pattern)}")
            return GateResult.NOT_FOUND
        return GateResult.PASSED
