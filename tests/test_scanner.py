"""
Tests for log pattern scanning and the three-valued log gate.
"""

import io

import pytest

from buildretry.core.diagnostics import RecordingSink
from buildretry.core.scanner import SCAN_ERROR_MESSAGE, GateResult, LogPatternScanner, compile_pattern
from buildretry.exceptions import InvalidPatternError, LogUnavailableError


@pytest.fixture
def build_log(tmp_path):
    log = tmp_path / "build.log"
    log.write_text("Started by timer\nCompiling 12 sources\nERROR: disk full\nFinished: FAILURE\n")
    return log


class StreamSource:
    """LogSource over an in-memory text stream that counts lines read."""

    def __init__(self, text: str):
        self.text = text
        self.lines_read = 0

    def open(self):
        source = self

        class Counting(io.StringIO):
            def __next__(self):
                line = super().__next__()
                source.lines_read += 1
                return line

        return Counting(self.text)


class BrokenSource:
    """LogSource whose stream fails halfway through."""

    def open(self):
        class Failing(io.StringIO):
            def __next__(self):
                raise OSError("stream truncated")

        return Failing("whatever\n")


class TestContains:
    """Tests for LogPatternScanner.contains."""

    def test_pattern_found(self, build_log):
        assert LogPatternScanner().contains(build_log, "disk full") is True

    def test_pattern_not_found(self, build_log):
        assert LogPatternScanner().contains(build_log, "out of memory") is False

    def test_not_anchored(self, build_log):
        """The pattern may match anywhere in a line."""
        assert LogPatternScanner().contains(build_log, r"disk\s+full$") is True
        assert LogPatternScanner().contains(build_log, r"^disk full") is False

    def test_str_path(self, build_log):
        assert LogPatternScanner().contains(str(build_log), "Compiling") is True

    def test_compiled_pattern(self, build_log):
        assert LogPatternScanner().contains(build_log, compile_pattern(r"FAIL\w+")) is True

    def test_stops_at_first_match(self):
        source = StreamSource("one\ntwo\nmatch here\nfour\nfive\n")
        assert LogPatternScanner().contains(source, "match") is True
        assert source.lines_read == 3

    def test_reads_whole_log_when_absent(self):
        source = StreamSource("one\ntwo\nthree\n")
        assert LogPatternScanner().contains(source, "missing") is False
        assert source.lines_read == 3

    def test_empty_log(self, tmp_path):
        log = tmp_path / "empty.log"
        log.write_text("")
        assert LogPatternScanner().contains(log, "anything") is False

    def test_undecodable_bytes_do_not_abort(self, tmp_path):
        log = tmp_path / "binary.log"
        log.write_bytes(b"\xff\xfe garbage\nConnection reset by peer\n")
        assert LogPatternScanner().contains(log, "Connection reset") is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(LogUnavailableError):
            LogPatternScanner().contains(tmp_path / "nope.log", "x")

    def test_missing_file_is_oserror(self, tmp_path):
        with pytest.raises(OSError):
            LogPatternScanner().contains(tmp_path / "nope.log", "x")

    def test_no_log(self):
        with pytest.raises(LogUnavailableError):
            LogPatternScanner().contains(None, "x")

    def test_read_failure(self):
        with pytest.raises(LogUnavailableError, match="stream truncated"):
            LogPatternScanner().contains(BrokenSource(), "x")

    def test_binary_stream(self):
        class BytesSource:
            def open(self):
                return io.BytesIO(b"ERROR: disk full\n")

        with pytest.raises(LogUnavailableError, match="bytes-like"):
            LogPatternScanner().contains(BytesSource(), "disk full")

    def test_source_open_failure(self):
        class ExpiredSource:
            def open(self):
                raise RuntimeError("artifact expired")

        with pytest.raises(LogUnavailableError, match="artifact expired"):
            LogPatternScanner().contains(ExpiredSource(), "x")

    def test_invalid_pattern(self, build_log):
        with pytest.raises(InvalidPatternError):
            LogPatternScanner().contains(build_log, "([unclosed")


class TestGate:
    """Tests for LogPatternScanner.gate."""

    def test_passed(self, build_log):
        assert LogPatternScanner().gate(build_log, "disk full") == GateResult.PASSED

    def test_not_found(self, build_log):
        assert LogPatternScanner().gate(build_log, "out of memory") == GateResult.NOT_FOUND

    @pytest.mark.parametrize("pattern", [None, ""])
    def test_no_pattern_disables_gate(self, pattern):
        """Without a pattern the log is not even opened."""
        assert LogPatternScanner().gate(None, pattern) == GateResult.PASSED

    def test_scan_error_is_reported(self, tmp_path):
        sink = RecordingSink()
        result = LogPatternScanner().gate(tmp_path / "nope.log", "disk full", sink)
        assert result == GateResult.SCAN_ERROR
        assert sink.messages == [SCAN_ERROR_MESSAGE]
        assert sink.records[0].exception_type == "LogUnavailableError"

    def test_invalid_pattern_fails_loudly(self, build_log):
        sink = RecordingSink()
        with pytest.raises(InvalidPatternError):
            LogPatternScanner().gate(build_log, "*oops", sink)
        assert len(sink) == 0


class TestCompilePattern:
    """Tests for compile_pattern."""

    def test_valid(self):
        assert compile_pattern("a+b").search("xaab")

    def test_invalid(self):
        with pytest.raises(InvalidPatternError) as exc_info:
            compile_pattern("(")
        assert exc_info.value.pattern == "("
