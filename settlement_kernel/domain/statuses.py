"""
Status vocabularies (``settlement_kernel.domain.statuses``).

Pure enumerations shared by models, workflows and services.  Values are the
strings persisted in the ``status`` / ``type`` / ``role`` columns.
"""

from __future__ import annotations

from enum import Enum


class ProjectType(str, Enum):
    """How work on a project is paid."""

    FIXED_PRICE = "FIXED_PRICE"
    HOURLY = "HOURLY"


class ActorRole(str, Enum):
    """Which side of a contract the acting user is on."""

    BUSINESS = "business"
    TALENT = "talent"


class MilestoneStatus(str, Enum):
    """Milestone lifecycle states.  Must align with ``MILESTONE_WORKFLOW.states``."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DeliverableStatus(str, Enum):
    """Deliverable lifecycle states.  Must align with ``DELIVERABLE_WORKFLOW.states``."""

    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TimeEntryStatus(str, Enum):
    """Time entry lifecycle states.  Must align with ``TIME_ENTRY_WORKFLOW.states``."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentStatus(str, Enum):
    """Payment lifecycle states.  PROCESSING resolves exactly once."""

    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


SUBMITTABLE_MILESTONE_STATUSES: frozenset[MilestoneStatus] = frozenset({
    MilestoneStatus.PENDING,
    MilestoneStatus.IN_PROGRESS,
})

SETTLED_PAYMENT_STATUSES: frozenset[PaymentStatus] = frozenset({
    PaymentStatus.PROCESSING,
    PaymentStatus.COMPLETED,
})


def can_submit_milestone(status: MilestoneStatus | str, role: ActorRole | str) -> bool:
    """True iff the actor is the talent and the milestone is still open for work."""
    if ActorRole(role) is not ActorRole.TALENT:
        return False
    return MilestoneStatus(status) in SUBMITTABLE_MILESTONE_STATUSES


def can_approve_milestone(status: MilestoneStatus | str, role: ActorRole | str) -> bool:
    """True iff the actor is the business and the milestone awaits review."""
    if ActorRole(role) is not ActorRole.BUSINESS:
        return False
    return MilestoneStatus(status) is MilestoneStatus.SUBMITTED
