"""
Retry scheduling glue for the host.

RetryScheduler ties the pieces together for each completion event: it
attaches the retry marker, evaluates it against the finished build, works out
the delay and (for fan-outs) the rerun plan, and hands a RetryRequest to the
host's resubmit callback once the delay has elapsed.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from buildretry.core.decision import ScheduleDecision
from buildretry.core.diagnostics import DEFAULT_SINK, DiagnosticSink
from buildretry.core.expression import ExpressionEvaluator
from buildretry.core.markers import AttachOutcome, MarkerStore
from buildretry.core.results import BuildRecord, Combination, FanoutResult
from buildretry.core.selector import RerunPlan, RerunSelector
from buildretry.utils.logging import get_logger

logger = get_logger("buildretry.scheduler")


@dataclass(frozen=True)
class RetryRequest:
    """A resubmission the host should perform."""

    record_id: str
    attempt: int
    delay_seconds: int

    # None for a standalone build; the members to rerun for a fan-out
    combinations: frozenset[Combination] | None = None

    # Resubmit the fan-out parent and run ``combinations`` inside it
    whole_fanout: bool = False

    plan: RerunPlan | None = None


Resubmit = Callable[[RetryRequest], Awaitable[None]]


class RetryScheduler:
    """
    Evaluates finished builds and schedules their retries.

    Examples:
        >>> scheduler = RetryScheduler()
        >>> scheduler.record_completion(build, RetryPolicy(max_retries=2))
        >>> request = await scheduler.schedule(build, attempt=0, resubmit=queue.put)
    """

    def __init__(
        self,
        store: MarkerStore[ScheduleDecision] | None = None,
        sink: DiagnosticSink | None = None,
        evaluator: ExpressionEvaluator | None = None,
    ):
        """
        Initialize RetryScheduler.

        Args:
            store: Marker store shared by all completion handlers
            sink: Diagnostic sink for fail-open log gates
            evaluator: Evaluator for combination filter strings
        """
        self.store: MarkerStore[ScheduleDecision] = store if store is not None else MarkerStore()
        self.sink = sink if sink is not None else DEFAULT_SINK
        self.selector = RerunSelector(evaluator)

    def record_completion(self, record: BuildRecord, decision: ScheduleDecision) -> AttachOutcome:
        """Attach ``decision`` to the record, or to its parent for fan-out members."""
        return self.store.attach_for(record, decision)

    def evaluate(self, record: BuildRecord, attempt: int, fanout: FanoutResult | None = None) -> RetryRequest | None:
        """
        Decide whether ``record`` is retried and how.

        Args:
            record: The finished build (the parent record for a fan-out)
            attempt: Retries already scheduled for this build
            fanout: Member results when ``record`` is a fan-out parent

        Returns:
            The RetryRequest, or None when no retry should happen
        """
        decision = self.store.get(record.marker_key)
        if decision is None:
            logger.debug(f"No retry marker on {record.record_id}")
            return None

        if not decision.should_schedule(record.result, record.log, attempt, sink=self.sink):
            logger.info(f"{record.record_id} ({record.result.value}) will not be retried")
            return None

        delay = decision.delay_for(attempt)

        if fanout is None:
            logger.info(f"Retrying {record.record_id} in {delay}s (retry {attempt + 1})")
            return RetryRequest(record_id=record.record_id, attempt=attempt, delay_seconds=delay)

        plan = self.selector.select(fanout, decision)
        if plan.empty:
            logger.info(f"{record.record_id} has no combination to rerun")
            return None

        logger.info(
            f"Retrying {len(plan.combinations)} of {len(fanout.members)} combinations of "
            f"{record.record_id} in {delay}s (retry {attempt + 1})"
        )
        return RetryRequest(
            record_id=record.record_id,
            attempt=attempt,
            delay_seconds=delay,
            combinations=plan.combinations,
            whole_fanout=plan.whole_fanout,
            plan=plan,
        )

    async def schedule(
        self,
        record: BuildRecord,
        attempt: int,
        resubmit: Resubmit,
        fanout: FanoutResult | None = None,
    ) -> RetryRequest | None:
        """
        Evaluate ``record`` and, if it is to be retried, resubmit it after the delay.

        The evaluation (including the blocking log scan) runs in a worker
        thread. Cancelling the task during the delay drops the retry.
        """
        request = await asyncio.to_thread(self.evaluate, record, attempt, fanout)
        if request is None:
            return None

        if request.delay_seconds > 0:
            await asyncio.sleep(request.delay_seconds)
        await resubmit(request)
        return request

    def release(self, record: BuildRecord) -> None:
        """Forget the marker once the record's lifecycle ends."""
        self.store.discard(record.marker_key)
