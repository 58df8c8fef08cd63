"""
Retry decisions for finished builds.

ScheduleDecision is the marker attached to a finished build: it carries the
retry budget, the delay strategy and the rerun scope, and answers whether the
build (or one fan-out member) should be scheduled again. RetryPolicy adds
result-based rules and log gating on top.
"""

from dataclasses import dataclass, field

from buildretry.core.diagnostics import DiagnosticSink
from buildretry.core.expression import DEFAULT_EVALUATOR, ExpressionEvaluator, compile_filter
from buildretry.core.results import BuildResult, Combination, LogHandle
from buildretry.core.scanner import GateResult, LogPatternScanner, compile_pattern
from buildretry.delays import DelayStrategy, ProgressiveDelay
from buildretry.utils.logging import get_logger

logger = get_logger("buildretry.decision")


def should_schedule_combination(result: BuildResult, retry_on_instability: bool) -> bool:
    """
    Whether a single fan-out member is eligible for rerun.

    Evaluated per member, without log gating and without the retry budget;
    both of those are checked once for the parent build.
    """
    if result.is_passing:
        return False
    if result == BuildResult.UNSTABLE and not retry_on_instability:
        return False
    return True


@dataclass(frozen=True)
class ScheduleDecision:
    """
    Base retry marker: a retry budget, a delay and a rerun scope.

    Subclasses refine ``should_schedule`` for whole builds,
    ``should_schedule_combination`` for fan-out members and
    ``accepts_combination`` to restrict which members are rerun.

    Examples:
        >>> decision = ScheduleDecision(max_retries=2)
        >>> decision.should_schedule(BuildResult.FAILURE, attempt=1)
        True
        >>> decision.should_schedule(BuildResult.FAILURE, attempt=2)
        False
    """

    # Maximum number of retries; 0 or less means unlimited
    max_retries: int = 0

    # Wait before each resubmission
    delay: DelayStrategy = field(default_factory=ProgressiveDelay)

    # Rerun selected members inside a resubmitted fan-out instead of on their own
    rerun_whole_fanout: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.delay, DelayStrategy):
            raise TypeError(f"delay must be a DelayStrategy, got {type(self.delay).__name__}")

    @property
    def unlimited(self) -> bool:
        return self.max_retries <= 0

    def within_budget(self, attempt: int) -> bool:
        """True while ``attempt`` retries leave room for one more."""
        return self.unlimited or attempt < self.max_retries

    def should_schedule(
        self,
        result: BuildResult,
        log: LogHandle = None,
        attempt: int = 0,
        *,
        sink: DiagnosticSink | None = None,
    ) -> bool:
        """
        Decide whether a finished build should be scheduled again.

        The base marker only enforces the retry budget.

        Args:
            result: Result of the finished build
            log: The build's log
            attempt: Retries already scheduled for this build
            sink: Where recoverable problems are reported

        Returns:
            True to resubmit the build after ``delay_for(attempt)`` seconds
        """
        return self.within_budget(attempt)

    def should_schedule_combination(self, result: BuildResult) -> bool:
        """Whether a fan-out member with ``result`` is eligible for rerun."""
        return not result.is_passing

    def accepts_combination(self, combination: Combination, evaluator: ExpressionEvaluator | None = None) -> bool:
        """Whether an eligible member is selected for rerun. Accepts all by default."""
        return True

    def delay_for(self, attempt: int) -> int:
        return self.delay.delay(attempt)


@dataclass(frozen=True)
class RetryPolicy(ScheduleDecision):
    """
    Retry marker with result rules, log gating and a combination filter.

    Examples:
        >>> policy = RetryPolicy(
        ...     max_retries=3,
        ...     delay=ProgressiveDelay(increment=60, max=600),
        ...     gating_pattern=r"Connection (reset|refused)",
        ...     retry_on_instability=True,
        ... )
        >>> policy.should_schedule(BuildResult.SUCCESS, "build.log", 0)
        False
    """

    # Retry only when the log contains this regular expression (None/"" = no gate)
    gating_pattern: str | None = None

    # Retry unstable builds (and unstable fan-out members) too
    retry_on_instability: bool = False

    # Filter expression selecting fan-out members to rerun (None = all eligible)
    combination_filter: str | None = None

    # Evaluator for ``combination_filter``; None uses the built-in axis expressions
    evaluator: ExpressionEvaluator | None = field(default=None, compare=False, repr=False)

    scanner: LogPatternScanner = field(default_factory=LogPatternScanner, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration so bad patterns fail before any build finishes."""
        super().__post_init__()
        if self.gating_pattern:
            compile_pattern(self.gating_pattern)
        if self.combination_filter and self.evaluator is None:
            compile_filter(self.combination_filter)

    def gate(self, log: LogHandle, sink: DiagnosticSink | None = None) -> GateResult:
        return self.scanner.gate(log, self.gating_pattern, sink)

    def should_schedule(
        self,
        result: BuildResult,
        log: LogHandle = None,
        attempt: int = 0,
        *,
        sink: DiagnosticSink | None = None,
    ) -> bool:
        if result.is_passing:
            return False

        if result == BuildResult.UNSTABLE and not self.retry_on_instability:
            logger.debug("Build is unstable and unstable builds are not retried")
            return False

        if self.gating_pattern:
            logger.debug(f"Checking log for gating pattern: {self.gating_pattern}")
            gate = self.gate(log, sink)
            if gate == GateResult.NOT_FOUND:
                logger.debug("Gating pattern not in log, not retrying")
                return False
            # SCAN_ERROR falls through: a broken log must not block the retry

        return super().should_schedule(result, log, attempt, sink=sink)

    def should_schedule_combination(self, result: BuildResult) -> bool:
        return should_schedule_combination(result, self.retry_on_instability)

    def accepts_combination(self, combination: Combination, evaluator: ExpressionEvaluator | None = None) -> bool:
        if not self.combination_filter:
            return True
        if evaluator is None:
            evaluator = self.evaluator if self.evaluator is not None else DEFAULT_EVALUATOR
        return evaluator.evaluate(self.combination_filter, combination)
