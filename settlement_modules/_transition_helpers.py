"""
Shared helpers for lifecycle transitions.

Used by settlement_modules/*/service.py so that every entity resolves its
transition, builds its status/timestamp/reason values and commits the same
way.

Architecture: Modules layer. Imports only from settlement_kernel.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from settlement_kernel.domain.review import DEFAULT_REJECTION_REASON, Reject, ReviewDecision
from settlement_kernel.domain.workflow import Transition, Workflow
from settlement_kernel.exceptions import InvalidStateError, PersistenceError

# Column stamped when an entity enters each status
STAMP_COLUMNS: dict[str, str] = {
    "SUBMITTED": "submitted_at",
    "APPROVED": "approved_at",
    "REJECTED": "rejected_at",
}


def require_transition(
    workflow: Workflow,
    entity_type: str,
    entity_id: UUID,
    current_status: str,
    action: str,
    message: str,
) -> Transition:
    """Return the transition for ``action`` or raise InvalidStateError with ``message``."""
    transition = workflow.find_transition(current_status, action)
    if transition is None:
        raise InvalidStateError(entity_type, str(entity_id), current_status, message)
    return transition


def transition_values(
    transition: Transition,
    now: datetime,
    decision: ReviewDecision | None = None,
    default_reason: str = DEFAULT_REJECTION_REASON,
) -> dict[str, Any]:
    """Status, entry timestamp and (for rejections) reason, as one UPDATE's values."""
    values: dict[str, Any] = {"status": transition.to_state}
    stamp = STAMP_COLUMNS.get(transition.to_state)
    if stamp is not None:
        values[stamp] = now
    if isinstance(decision, Reject):
        values["rejection_reason"] = decision.effective_reason(default_reason)
    return values


def commit(session: Session, operation: str) -> None:
    """Commit, converting a storage failure into PersistenceError after rollback."""
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError(operation, str(exc)) from exc
