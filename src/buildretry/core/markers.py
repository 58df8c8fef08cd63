"""
Retry markers attached to build records.

Every fan-out member reports completion on its own, possibly concurrently,
and each tries to attach the retry policy to the shared parent record. The
store guarantees that only the first attach succeeds.
"""

import threading
from enum import StrEnum
from typing import Generic, TypeVar

from buildretry.core.results import BuildRecord
from buildretry.utils.logging import get_logger

logger = get_logger("buildretry.markers")

M = TypeVar("M")


class AttachOutcome(StrEnum):
    """Result of an attach attempt."""

    ATTACHED = "attached"
    ALREADY_PRESENT = "already_present"


class MarkerStore(Generic[M]):
    """
    Keyed store of retry markers, one per build record.

    ``attach`` is an atomic check-and-insert: with N concurrent callers for
    the same record exactly one sees ATTACHED and the marker it passed is the
    one stored; the others see ALREADY_PRESENT and change nothing.

    Examples:
        >>> store = MarkerStore()
        >>> store.attach("build-42", policy)
        <AttachOutcome.ATTACHED: 'attached'>
        >>> store.attach("build-42", other_policy)
        <AttachOutcome.ALREADY_PRESENT: 'already_present'>
    """

    def __init__(self):
        self._markers: dict[str, M] = {}
        self._lock = threading.Lock()

    def attach(self, record_id: str, marker: M) -> AttachOutcome:
        """Attach ``marker`` to ``record_id`` unless one is already attached."""
        with self._lock:
            if record_id in self._markers:
                outcome = AttachOutcome.ALREADY_PRESENT
            else:
                self._markers[record_id] = marker
                outcome = AttachOutcome.ATTACHED
        logger.debug(f"Retry marker for {record_id}: {outcome.value}")
        return outcome

    def attach_for(self, record: BuildRecord, marker: M) -> AttachOutcome:
        """Attach to the record itself, or to its parent for fan-out members."""
        return self.attach(record.marker_key, marker)

    def get(self, record_id: str) -> M | None:
        with self._lock:
            return self._markers.get(record_id)

    def discard(self, record_id: str) -> M | None:
        """Remove the marker when the record's lifecycle ends."""
        with self._lock:
            return self._markers.pop(record_id, None)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._markers

    def __len__(self) -> int:
        with self._lock:
            return len(self._markers)
