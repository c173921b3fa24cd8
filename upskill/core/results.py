"""Tagged results for sub-computations that degrade instead of failing.

A dashboard field is computed as ``Ok(value)`` or ``Degraded(default, reason)``
so the aggregator can compose fields without using exceptions for control flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def degraded(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Degraded(Generic[T]):
    """A documented default standing in for a value that could not be computed."""

    value: T
    reason: str

    @property
    def degraded(self) -> bool:
        return True


Outcome = Ok[T] | Degraded[T]
