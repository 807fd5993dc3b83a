"""Tagged result of a decode attempt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class DecodeOutcome(Generic[T]):
    """Either a decoded value or the fallback substituted for it.

    `degraded` is True when the reply could not be interpreted and `value`
    is a default; `reason` then says why.
    """

    value: T
    degraded: bool = False
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "DecodeOutcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> "DecodeOutcome[T]":
        return cls(value=value, degraded=True, reason=reason)
