"""
Review decisions (``settlement_kernel.domain.review``).

Responsibility
--------------
A tagged variant for the outcome of a review: ``Approve`` or
``Reject(reason)``.  Deliverable, time entry and milestone reviews all
consume the same variant, so the approve/reject branching lives in one
transition function per entity type instead of string comparisons at every
call site.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from settlement_kernel.exceptions import ValidationError

DEFAULT_REJECTION_REASON = "No reason provided"


@dataclass(frozen=True)
class Approve:
    """The reviewer accepts the work."""

    action: ClassVar[str] = "approve"


@dataclass(frozen=True)
class Reject:
    """The reviewer declines the work, optionally saying why."""

    reason: str | None = None

    action: ClassVar[str] = "reject"

    def effective_reason(self, default: str = DEFAULT_REJECTION_REASON) -> str:
        """The stored reason: the reviewer's text, or ``default`` when blank."""
        return self.reason or default


ReviewDecision = Approve | Reject


def decision_from_request(action: str, rejection_reason: str | None = None) -> ReviewDecision:
    """Build a decision from the ``action`` string an HTTP caller sends.

    Raises:
        ValidationError: If ``action`` is neither ``approve`` nor ``reject``.
    """
    normalized = (action or "").strip().lower()
    if normalized == Approve.action:
        return Approve()
    if normalized == Reject.action:
        return Reject(reason=rejection_reason)
    raise ValidationError("action", f"Unknown review action: {action!r}")
