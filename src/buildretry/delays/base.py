"""
Base delay strategy interface.

A delay strategy maps a retry attempt count to the number of seconds to wait
before the build is resubmitted.
"""

from abc import ABC, abstractmethod
from typing import Any


class DelayStrategy(ABC):
    """
    Base class for retry delay strategies.

    Implementations are immutable: ``delay()`` is a pure function of the
    attempt count and the strategy's configuration. Attempt counts are 0-based,
    so ``delay(0)`` is the wait before the first retry.
    """

    #: Name used in configuration files and the strategy registry
    name: str = ""

    @abstractmethod
    def delay(self, attempt: int) -> int:
        """
        Seconds to wait before resubmitting.

        Args:
            attempt: Number of retries already scheduled (0 for the first retry)

        Returns:
            Non-negative delay in seconds
        """

    def to_dict(self) -> dict[str, Any]:
        """Configuration of this strategy, in the shape accepted by the registry."""
        return {"type": self.name}


def _require_non_negative(**values: int) -> None:
    for key, value in values.items():
        if value < 0:
            raise ValueError(f"{key} must be >= 0")
