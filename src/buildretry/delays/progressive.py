"""
Progressive delay - linearly growing wait, capped.
"""

from dataclasses import dataclass
from typing import Any

from buildretry.delays.base import DelayStrategy, _require_non_negative

#: Backward-compatible default: 5 minutes more per retry, up to 3 hours
DEFAULT_INCREMENT = 5 * 60
DEFAULT_MAX = 3 * 60 * 60


@dataclass(frozen=True)
class ProgressiveDelay(DelayStrategy):
    """
    Wait ``increment`` seconds longer for each retry, never more than ``max``.

    The first retry waits ``increment``, the second ``2 * increment`` and so
    on. With the defaults the sequence is 300, 600, 900, ... 10800, 10800.
    A zero increment gives immediate retries.

    Examples:
        >>> ProgressiveDelay().delay(0)
        300
        >>> ProgressiveDelay(increment=60, max=150).delay(5)
        150
    """

    increment: int = DEFAULT_INCREMENT
    max: int = DEFAULT_MAX

    name = "progressive"

    def __post_init__(self) -> None:
        _require_non_negative(increment=self.increment, max=self.max)

    def delay(self, attempt: int) -> int:
        return min(self.increment * (max(attempt, 0) + 1), self.max)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.name, "increment": self.increment, "max": self.max}
