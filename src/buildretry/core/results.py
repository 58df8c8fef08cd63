"""
Build results and records as seen by the retry engine.

A BuildRecord is one finished build; a FanoutResult is a finished matrix
build (the parent record plus the result of every member combination).
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Protocol, TextIO, runtime_checkable


class BuildResult(StrEnum):
    """Terminal outcome of a build, supplied by the host."""

    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"
    ABORTED = "aborted"
    OTHER = "other"  # e.g. not built

    @classmethod
    def parse(cls, value: str | BuildResult | None) -> BuildResult:
        """Parse a result name case-insensitively; unknown names map to OTHER."""
        if isinstance(value, BuildResult):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.OTHER

    @property
    def is_passing(self) -> bool:
        """True for results that never warrant a retry."""
        return self in (BuildResult.SUCCESS, BuildResult.ABORTED)


@runtime_checkable
class LogSource(Protocol):
    """Anything that can open a build log as a line-oriented text stream."""

    def open(self) -> TextIO: ...


#: A build log: a file path, a LogSource, or None when the host has no log
LogHandle = str | Path | LogSource | None


class Combination(Mapping[str, str]):
    """
    Coordinates of one fan-out member: one value per axis.

    Immutable and hashable so it can be used in sets and as a mapping key.
    Axis order is preserved for display but ignored for equality.

    Examples:
        >>> c = Combination({"os": "linux", "jdk": "17"})
        >>> str(c)
        'os=linux,jdk=17'
        >>> Combination.parse("os=linux,jdk=17") == c
        True
    """

    __slots__ = ("_values", "_hash")

    def __init__(self, values: Mapping[str, Any] | None = None, **axes: Any) -> None:
        merged = dict(values or {})
        merged.update(axes)
        self._values: dict[str, str] = {str(k): str(v) for k, v in merged.items()}
        self._hash = hash(frozenset(self._values.items()))

    @classmethod
    def parse(cls, text: str) -> Combination:
        """Parse the ``axis=value,axis=value`` form produced by ``str()``."""
        values: dict[str, str] = {}
        for part in text.split(","):
            part = part.strip()
            if not part:
                continue
            axis, sep, value = part.partition("=")
            if not sep or not axis.strip():
                raise ValueError(f"Invalid combination {text!r}: expected axis=value pairs")
            values[axis.strip()] = value.strip()
        return cls(values)

    def __getitem__(self, axis: str) -> str:
        return self._values[axis]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Combination):
            return self._values == other._values
        return NotImplemented

    def __str__(self) -> str:
        return ",".join(f"{k}={v}" for k, v in self._values.items())

    def __repr__(self) -> str:
        return f"Combination({self._values!r})"


@dataclass(frozen=True)
class BuildRecord:
    """
    A finished build as reported by the host.

    Fan-out members carry the id of their parent record in ``parent_id``.
    """

    record_id: str
    result: BuildResult
    log: LogHandle = None
    parent_id: str | None = None
    combination: Combination | None = None

    @property
    def is_fanout_member(self) -> bool:
        return self.parent_id is not None

    @property
    def marker_key(self) -> str:
        """Record that carries the retry marker: the parent for fan-out members."""
        return self.parent_id or self.record_id


@dataclass(frozen=True)
class FanoutResult:
    """A finished fan-out: the parent record and each member's result."""

    parent: BuildRecord
    members: Mapping[Combination, BuildResult] = field(default_factory=dict)

    @classmethod
    def from_records(cls, parent: BuildRecord, records: list[BuildRecord]) -> FanoutResult:
        """Collect member records (each with a combination) under ``parent``."""
        members: dict[Combination, BuildResult] = {}
        for record in records:
            if record.combination is None:
                raise ValueError(f"Fan-out member {record.record_id} has no combination")
            members[record.combination] = record.result
        return cls(parent=parent, members=members)

    @property
    def combinations(self) -> list[Combination]:
        return list(self.members)
