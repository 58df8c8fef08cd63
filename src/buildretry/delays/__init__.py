"""
Retry delay strategies.

Fixed, progressive and exponential waits between an unsuccessful build and
its automatic resubmission.
"""

from typing import Any

from buildretry.delays.base import DelayStrategy
from buildretry.delays.exponential import ExponentialDelay
from buildretry.delays.fixed import FixedDelay
from buildretry.delays.progressive import ProgressiveDelay
from buildretry.exceptions import ConfigurationError

__all__ = [
    "DelayStrategy",
    "FixedDelay",
    "ProgressiveDelay",
    "ExponentialDelay",
    "DELAY_STRATEGIES",
    "get_delay_strategy",
    "delay_from_config",
]

# Delay strategy registry
DELAY_STRATEGIES: dict[str, type[DelayStrategy]] = {
    "fixed": FixedDelay,
    "progressive": ProgressiveDelay,
    "exponential": ExponentialDelay,
}


def get_delay_strategy(strategy_name: str, **params: Any) -> DelayStrategy:
    """Get a delay strategy by name, configured with ``params``."""
    if strategy_name not in DELAY_STRATEGIES:
        raise ConfigurationError(
            f"Unknown delay strategy: {strategy_name}",
            details={"available": sorted(DELAY_STRATEGIES)},
        )
    try:
        return DELAY_STRATEGIES[strategy_name](**params)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {strategy_name} delay settings: {e}") from e


def delay_from_config(section: dict[str, Any] | None) -> DelayStrategy:
    """
    Build a delay strategy from a ``delay`` configuration section.

    A missing section gives the backward-compatible progressive default
    (5 minutes more per retry, capped at 3 hours).

    Args:
        section: Mapping with a ``type`` key plus the strategy's settings

    Returns:
        Configured DelayStrategy
    """
    if not section:
        return ProgressiveDelay()
    if not isinstance(section, dict):
        raise ConfigurationError(f"delay must be a mapping, got {type(section).__name__}")

    params = dict(section)
    strategy_name = str(params.pop("type", ProgressiveDelay.name)).lower()
    if strategy_name == FixedDelay.name and "delay" in params:
        params["seconds"] = params.pop("delay")
    try:
        # Values substituted from ${VARS} arrive as strings
        params = {k: int(v) for k, v in params.items()}
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {strategy_name} delay settings: {e}") from e
    return get_delay_strategy(strategy_name, **params)
