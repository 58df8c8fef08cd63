"""
buildretry - retry decisions for finished builds.

Decides whether a finished build is resubmitted, how long to wait first, and
which members of a fan-out (matrix) build run again.
"""

__version__ = "0.1.0"

# Config
from buildretry.config import Config, load_config, policy_from_config, policy_from_dict

# Core engine
from buildretry.core import (
    AttachOutcome,
    BuildRecord,
    BuildResult,
    Combination,
    FanoutResult,
    GateResult,
    LogPatternScanner,
    MarkerStore,
    RecordingSink,
    RerunPlan,
    RerunSelector,
    RetryPolicy,
    RetryRequest,
    RetryScheduler,
    ScheduleDecision,
    should_schedule_combination,
)

# Delays
from buildretry.delays import DelayStrategy, ExponentialDelay, FixedDelay, ProgressiveDelay, get_delay_strategy

# Exceptions
from buildretry.exceptions import (
    BuildRetryError,
    ConfigurationError,
    ExpressionError,
    InvalidPatternError,
    LogUnavailableError,
)

# Logging utilities
from buildretry.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Decisions
    "ScheduleDecision",
    "RetryPolicy",
    "should_schedule_combination",
    # Results
    "BuildResult",
    "BuildRecord",
    "Combination",
    "FanoutResult",
    # Log gating
    "LogPatternScanner",
    "GateResult",
    "RecordingSink",
    # Fan-out
    "RerunSelector",
    "RerunPlan",
    # Markers and scheduling
    "MarkerStore",
    "AttachOutcome",
    "RetryScheduler",
    "RetryRequest",
    # Delays
    "DelayStrategy",
    "FixedDelay",
    "ProgressiveDelay",
    "ExponentialDelay",
    "get_delay_strategy",
    # Config
    "Config",
    "load_config",
    "policy_from_config",
    "policy_from_dict",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    # Exceptions
    "BuildRetryError",
    "ConfigurationError",
    "InvalidPatternError",
    "ExpressionError",
    "LogUnavailableError",
]
