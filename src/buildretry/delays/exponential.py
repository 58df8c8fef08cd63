"""
Exponential delay - doubling (or ``base``-multiplying) wait, capped.
"""

from dataclasses import dataclass
from typing import Any

from buildretry.delays.base import DelayStrategy, _require_non_negative


@dataclass(frozen=True)
class ExponentialDelay(DelayStrategy):
    """
    Wait ``initial * base ** attempt`` seconds, never more than ``max``.

    No jitter: the delay depends only on the attempt count.
    """

    initial: int = 60
    max: int = 3 * 60 * 60
    base: int = 2

    name = "exponential"

    def __post_init__(self) -> None:
        _require_non_negative(initial=self.initial, max=self.max)
        if self.base < 1:
            raise ValueError("base must be >= 1")

    def delay(self, attempt: int) -> int:
        attempt = max(attempt, 0)
        if self.initial == 0 or self.base == 1:
            return min(self.initial, self.max)
        # Stop once capped
        delay = self.initial
        for _ in range(attempt):
            if delay >= self.max:
                break
            delay *= self.base
        return min(delay, self.max)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.name, "initial": self.initial, "max": self.max, "base": self.base}
