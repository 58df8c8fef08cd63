"""
Retry decision engine: results, decisions, log gating, fan-out selection and
marker deduplication.
"""

from buildretry.core.decision import RetryPolicy, ScheduleDecision, should_schedule_combination
from buildretry.core.diagnostics import DiagnosticSink, LoggerSink, RecordingSink
from buildretry.core.expression import AxisExpressionEvaluator, ExpressionEvaluator, compile_filter
from buildretry.core.markers import AttachOutcome, MarkerStore
from buildretry.core.results import BuildRecord, BuildResult, Combination, FanoutResult, LogHandle, LogSource
from buildretry.core.scanner import GateResult, LogPatternScanner, compile_pattern
from buildretry.core.scheduler import RetryRequest, RetryScheduler
from buildretry.core.selector import RerunPlan, RerunSelector

__all__ = [
    # Results
    "BuildResult",
    "BuildRecord",
    "Combination",
    "FanoutResult",
    "LogHandle",
    "LogSource",
    # Decisions
    "ScheduleDecision",
    "RetryPolicy",
    "should_schedule_combination",
    # Log gating
    "LogPatternScanner",
    "GateResult",
    "compile_pattern",
    # Diagnostics
    "DiagnosticSink",
    "LoggerSink",
    "RecordingSink",
    # Fan-out selection
    "RerunSelector",
    "RerunPlan",
    "ExpressionEvaluator",
    "AxisExpressionEvaluator",
    "compile_filter",
    # Markers
    "MarkerStore",
    "AttachOutcome",
    # Scheduling
    "RetryScheduler",
    "RetryRequest",
]
