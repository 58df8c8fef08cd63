"""
Partial reruns of fan-out (matrix) builds.

Given a finished fan-out and the retry marker attached to it, the selector
decides which member combinations run again.
"""

from dataclasses import dataclass, field

from buildretry.core.decision import ScheduleDecision
from buildretry.core.expression import ExpressionEvaluator
from buildretry.core.results import Combination, FanoutResult
from buildretry.utils.logging import get_logger

logger = get_logger("buildretry.selector")


@dataclass(frozen=True)
class RerunPlan:
    """Combinations to resubmit for one fan-out run."""

    combinations: frozenset[Combination] = field(default_factory=frozenset)

    # Members that will not run again (passed, or not selected)
    skipped: frozenset[Combination] = field(default_factory=frozenset)

    # Resubmit the parent and run only ``combinations`` inside it
    whole_fanout: bool = False

    # The filter selected nothing, so every eligible member was taken
    fallback_applied: bool = False

    @property
    def empty(self) -> bool:
        return not self.combinations

    def sorted_combinations(self) -> list[Combination]:
        return sorted(self.combinations, key=str)


class RerunSelector:
    """
    Selects the fan-out members to rerun.

    Modes:
    - Default (no filter): every member eligible per
      ``should_schedule_combination`` is rerun.
    - Filtered: eligible members also accepted by ``accepts_combination``.
    - Empty-selection fallback: a filter that accepts none of the eligible
      members acts as no filter, so all eligible members are rerun.

    Examples:
        >>> fanout = FanoutResult(parent, {
        ...     Combination(axis="A"): BuildResult.FAILURE,
        ...     Combination(axis="B"): BuildResult.SUCCESS,
        ... })
        >>> RerunSelector().select(fanout, RetryPolicy()).sorted_combinations()
        [Combination({'axis': 'A'})]
    """

    def __init__(self, evaluator: ExpressionEvaluator | None = None):
        """
        Initialize RerunSelector.

        Args:
            evaluator: Evaluator for combination filter strings (default: axis expressions)
        """
        self.evaluator = evaluator

    def select(
        self,
        fanout: FanoutResult,
        decision: ScheduleDecision,
        evaluator: ExpressionEvaluator | None = None,
    ) -> RerunPlan:
        """
        Build the rerun plan for ``fanout`` under ``decision``.

        ``evaluator`` overrides the selector's own evaluator for this call.

        Raises:
            ExpressionError: If the decision's filter cannot be evaluated
        """
        eligible = [c for c, result in fanout.members.items() if decision.should_schedule_combination(result)]
        if evaluator is None:
            evaluator = self.evaluator
        selected = [c for c in eligible if decision.accepts_combination(c, evaluator)]

        fallback = False
        if eligible and not selected:
            logger.info(
                f"No eligible combination of {fanout.parent.record_id} matched the filter, "
                f"rerunning all {len(eligible)} eligible combinations"
            )
            selected = eligible
            fallback = True

        chosen = frozenset(selected)
        plan = RerunPlan(
            combinations=chosen,
            skipped=frozenset(c for c in fanout.members if c not in chosen),
            whole_fanout=decision.rerun_whole_fanout,
            fallback_applied=fallback,
        )
        logger.debug(
            f"Rerun plan for {fanout.parent.record_id}: "
            f"{', '.join(str(c) for c in plan.sorted_combinations()) or 'nothing'}"
        )
        return plan
