"""
Fixed delay - the same wait before every retry.
"""

from dataclasses import dataclass
from typing import Any

from buildretry.delays.base import DelayStrategy, _require_non_negative


@dataclass(frozen=True)
class FixedDelay(DelayStrategy):
    """Wait ``seconds`` before every retry. ``FixedDelay(0)`` retries immediately."""

    seconds: int = 0

    name = "fixed"

    def __post_init__(self) -> None:
        _require_non_negative(seconds=self.seconds)

    def delay(self, attempt: int) -> int:
        return self.seconds

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.name, "delay": self.seconds}
