"""
Tests for retry decisions on finished builds.
"""

import io
import re

import pytest

from buildretry.core.decision import RetryPolicy, ScheduleDecision, should_schedule_combination
from buildretry.core.diagnostics import RecordingSink
from buildretry.core.results import BuildResult, Combination
from buildretry.core.scanner import SCAN_ERROR_MESSAGE, GateResult
from buildretry.delays import FixedDelay, ProgressiveDelay
from buildretry.exceptions import ExpressionError, InvalidPatternError


@pytest.fixture
def disk_full_log(tmp_path):
    log = tmp_path / "build.log"
    log.write_text("Building...\nERROR: disk full\nFinished: FAILURE\n")
    return log


class TestScheduleDecision:
    """Tests for the base retry marker."""

    def test_defaults(self):
        decision = ScheduleDecision()
        assert decision.max_retries == 0
        assert decision.delay == ProgressiveDelay(300, 10800)
        assert decision.rerun_whole_fanout is False

    def test_budget(self):
        decision = ScheduleDecision(max_retries=2)
        assert decision.should_schedule(BuildResult.FAILURE, None, 0) is True
        assert decision.should_schedule(BuildResult.FAILURE, None, 1) is True
        assert decision.should_schedule(BuildResult.FAILURE, None, 2) is False

    @pytest.mark.parametrize("max_retries", [0, -1])
    def test_unlimited(self, max_retries):
        decision = ScheduleDecision(max_retries=max_retries)
        assert decision.unlimited is True
        for attempt in (0, 100, 2000):
            assert decision.should_schedule(BuildResult.FAILURE, None, attempt) is True

    def test_combination_default(self):
        decision = ScheduleDecision()
        assert decision.should_schedule_combination(BuildResult.FAILURE) is True
        assert decision.should_schedule_combination(BuildResult.UNSTABLE) is True
        assert decision.should_schedule_combination(BuildResult.SUCCESS) is False
        assert decision.should_schedule_combination(BuildResult.ABORTED) is False
        assert decision.accepts_combination(Combination(axis="x")) is True

    def test_delay_for(self):
        assert ScheduleDecision(delay=FixedDelay(42)).delay_for(7) == 42

    def test_rejects_non_strategy_delay(self):
        with pytest.raises(TypeError, match="DelayStrategy"):
            ScheduleDecision(delay=30)

    def test_immutable(self):
        decision = ScheduleDecision(max_retries=1)
        with pytest.raises(AttributeError):
            decision.max_retries = 5


class TestShouldScheduleResults:
    """Result rules of RetryPolicy.should_schedule."""

    @pytest.mark.parametrize("result", [BuildResult.SUCCESS, BuildResult.ABORTED])
    @pytest.mark.parametrize("unstable", [True, False])
    @pytest.mark.parametrize("max_retries", [0, 5])
    def test_passing_results_never_retried(self, result, unstable, max_retries, disk_full_log):
        policy = RetryPolicy(
            max_retries=max_retries,
            retry_on_instability=unstable,
            gating_pattern="disk full",
        )
        assert policy.should_schedule(result, disk_full_log, 0) is False

    def test_unstable_not_retried_by_default(self):
        assert RetryPolicy().should_schedule(BuildResult.UNSTABLE, None, 0) is False

    def test_unstable_retried_when_enabled(self):
        assert RetryPolicy(retry_on_instability=True).should_schedule(BuildResult.UNSTABLE, None, 0) is True

    @pytest.mark.parametrize("result", [BuildResult.FAILURE, BuildResult.OTHER])
    def test_failures_retried(self, result):
        assert RetryPolicy().should_schedule(result, None, 0) is True


class TestShouldScheduleBudget:
    """Retry budget of RetryPolicy.should_schedule."""

    def test_max_retries_two(self):
        policy = RetryPolicy(max_retries=2)
        assert policy.should_schedule(BuildResult.FAILURE, None, 0) is True
        assert policy.should_schedule(BuildResult.FAILURE, None, 1) is True
        assert policy.should_schedule(BuildResult.FAILURE, None, 2) is False
        assert policy.should_schedule(BuildResult.FAILURE, None, 3) is False

    @pytest.mark.parametrize("max_retries", [0, -1])
    def test_unlimited(self, max_retries):
        policy = RetryPolicy(max_retries=max_retries)
        assert all(policy.should_schedule(BuildResult.FAILURE, None, n) for n in range(0, 2001, 100))
        assert policy.should_schedule(BuildResult.FAILURE, None, 2000) is True


class TestLogGating:
    """Log gating of RetryPolicy.should_schedule."""

    def test_pattern_found(self, disk_full_log):
        policy = RetryPolicy(gating_pattern="disk full")
        assert policy.should_schedule(BuildResult.FAILURE, disk_full_log, 0) is True

    def test_pattern_not_found(self, disk_full_log):
        policy = RetryPolicy(gating_pattern="out of memory")
        assert policy.should_schedule(BuildResult.FAILURE, disk_full_log, 0) is False

    def test_empty_pattern_disables_gate(self):
        """No log at all is fine when there is nothing to look for."""
        sink = RecordingSink()
        assert RetryPolicy(gating_pattern="").should_schedule(BuildResult.FAILURE, None, 0, sink=sink) is True
        assert len(sink) == 0

    def test_gate_still_respects_budget(self, disk_full_log):
        policy = RetryPolicy(max_retries=1, gating_pattern="disk full")
        assert policy.should_schedule(BuildResult.FAILURE, disk_full_log, 1) is False

    @pytest.mark.parametrize(
        "max_retries,attempt",
        [(0, 0), (0, 500), (2, 0), (2, 1), (2, 2), (2, 5)],
    )
    def test_unreadable_log_fails_open(self, tmp_path, max_retries, attempt):
        """A broken log gives the same answer as having no gate, plus a diagnostic."""
        sink = RecordingSink()
        gated = RetryPolicy(max_retries=max_retries, gating_pattern="disk full")
        ungated = RetryPolicy(max_retries=max_retries)

        result = gated.should_schedule(BuildResult.FAILURE, tmp_path / "missing.log", attempt, sink=sink)

        assert result == ungated.should_schedule(BuildResult.FAILURE, None, attempt)
        assert sink.messages == [SCAN_ERROR_MESSAGE]

    def test_no_log_handle_fails_open(self):
        sink = RecordingSink()
        policy = RetryPolicy(gating_pattern="disk full")
        assert policy.should_schedule(BuildResult.FAILURE, None, 0, sink=sink) is True
        assert len(sink) == 1

    def test_gate_not_scanned_for_passing_results(self, tmp_path):
        sink = RecordingSink()
        policy = RetryPolicy(gating_pattern="disk full")
        assert policy.should_schedule(BuildResult.SUCCESS, tmp_path / "missing.log", 0, sink=sink) is False
        assert len(sink) == 0

    def test_gate_result(self, disk_full_log, tmp_path):
        policy = RetryPolicy(gating_pattern="disk full")
        assert policy.gate(disk_full_log) == GateResult.PASSED
        assert RetryPolicy(gating_pattern="nope").gate(disk_full_log) == GateResult.NOT_FOUND
        assert policy.gate(tmp_path / "missing.log", RecordingSink()) == GateResult.SCAN_ERROR

    def test_empty_recording_sink_receives_diagnostic(self, tmp_path):
        """An empty sink is falsy but is still the sink the caller asked for."""
        sink = RecordingSink()
        assert not sink
        RetryPolicy(gating_pattern="disk full").gate(tmp_path / "missing.log", sink)
        assert sink.messages == [SCAN_ERROR_MESSAGE]

    def test_binary_log_source_fails_open(self):
        class BytesSource:
            def open(self):
                return io.BytesIO(b"ERROR: disk full\n")

        sink = RecordingSink()
        policy = RetryPolicy(gating_pattern="disk full")
        assert policy.should_schedule(BuildResult.FAILURE, BytesSource(), 0, sink=sink) is True
        assert sink.messages == [SCAN_ERROR_MESSAGE]

    def test_invalid_pattern_rejected_at_construction(self):
        with pytest.raises(InvalidPatternError):
            RetryPolicy(gating_pattern="[unclosed")


class TestShouldScheduleCombination:
    """Tests for the per-member predicate."""

    @pytest.mark.parametrize(
        "result,unstable,expected",
        [
            (BuildResult.SUCCESS, True, False),
            (BuildResult.ABORTED, True, False),
            (BuildResult.UNSTABLE, False, False),
            (BuildResult.UNSTABLE, True, True),
            (BuildResult.FAILURE, False, True),
            (BuildResult.OTHER, False, True),
        ],
    )
    def test_function(self, result, unstable, expected):
        assert should_schedule_combination(result, unstable) is expected

    def test_method_uses_policy_flag(self):
        assert RetryPolicy(retry_on_instability=False).should_schedule_combination(BuildResult.UNSTABLE) is False
        assert RetryPolicy(retry_on_instability=True).should_schedule_combination(BuildResult.UNSTABLE) is True

    def test_ignores_budget_and_gate(self):
        policy = RetryPolicy(max_retries=1, gating_pattern="never in any log")
        assert policy.should_schedule_combination(BuildResult.FAILURE) is True


class TestCombinationFilter:
    """Tests for RetryPolicy.accepts_combination."""

    def test_no_filter_accepts_everything(self):
        assert RetryPolicy().accepts_combination(Combination(os="linux")) is True

    def test_filter(self):
        policy = RetryPolicy(combination_filter="os == 'linux'")
        assert policy.accepts_combination(Combination(os="linux")) is True
        assert policy.accepts_combination(Combination(os="windows")) is False

    def test_invalid_filter_rejected_at_construction(self):
        with pytest.raises(ExpressionError):
            RetryPolicy(combination_filter="os ==")

    def test_filter_checked_by_own_evaluator(self):
        class RegexEvaluator:
            def evaluate(self, expression, values):
                axis, _, pattern = expression.partition(" =~ ")
                return re.search(pattern.strip("/"), values[axis]) is not None

        policy = RetryPolicy(combination_filter="os =~ /lin/", evaluator=RegexEvaluator())
        assert policy.accepts_combination(Combination(os="linux")) is True
        assert policy.accepts_combination(Combination(os="mac")) is False
        with pytest.raises(ExpressionError):
            RetryPolicy(combination_filter="os =~ /lin/")

    def test_custom_evaluator(self):
        class AlwaysNo:
            def evaluate(self, expression, values):
                return False

        policy = RetryPolicy(combination_filter="os == 'linux'")
        assert policy.accepts_combination(Combination(os="linux"), AlwaysNo()) is False
