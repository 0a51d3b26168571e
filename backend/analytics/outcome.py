"""
Outcome of a fallback chain — pure types only.

  Success(data)           — the primary source answered
  Degraded(data, reason)  — a fallback answered because the primary failed
  Empty(reason)           — nothing to report; not an error

Callers read `.data` uniformly and `.status` when they need to tell the
three apart.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union


@dataclass
class Success:
    data: Any
    status: ClassVar[str] = "success"

    @property
    def reason(self) -> str | None:
        return None


@dataclass
class Degraded:
    data: Any
    reason: str
    status: ClassVar[str] = "degraded"


@dataclass
class Empty:
    reason: str = ""
    data: list = field(default_factory=list)
    status: ClassVar[str] = "empty"


Outcome = Union[Success, Degraded, Empty]


def describe(outcome: Outcome) -> dict:
    """Status block attached to API responses."""
    return {"status": outcome.status, "reason": outcome.reason or None}
