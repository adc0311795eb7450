"""
Fulfillment Domain Models (``settlement_modules.fulfillment.models``).

Responsibility
--------------
Frozen value objects returned by ``FulfillmentService`` that are not plain
entity snapshots: the enriched milestone view and the two-part outcome of
a milestone review.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.domain.dtos import (
    DeliverableDTO,
    DisplayMixin,
    MilestoneDTO,
    PaymentDTO,
    TimeEntryDTO,
)
from settlement_kernel.domain.statuses import MilestoneStatus, PaymentStatus
from settlement_kernel.exceptions import SettlementError


@dataclass(frozen=True)
class MilestoneView(DisplayMixin):
    """
    A milestone as one party sees it.

    ``can_submit`` / ``can_approve`` are computed for the viewing role.
    """

    milestone: MilestoneDTO
    deliverables: tuple[DeliverableDTO, ...]
    time_entries: tuple[TimeEntryDTO, ...]
    total_hours: Decimal
    can_submit: bool
    can_approve: bool


@dataclass(frozen=True)
class MilestoneReviewResult:
    """
    Outcome of reviewing a milestone.

    The status write and the payment are separate steps.  An approval is
    never undone because its payment failed; ``payment_error`` reports the
    failure instead.
    """

    milestone: MilestoneDTO
    payment: PaymentDTO | None = None
    payment_error: SettlementError | None = None

    @property
    def approved(self) -> bool:
        return self.milestone.status is MilestoneStatus.APPROVED

    @property
    def payment_attempted(self) -> bool:
        return self.payment is not None or self.payment_error is not None

    @property
    def is_success(self) -> bool:
        if self.payment_error is not None:
            return False
        if self.approved:
            return self.payment is not None and self.payment.status is PaymentStatus.COMPLETED
        return True

    @property
    def message(self) -> str | None:
        return str(self.payment_error) if self.payment_error is not None else None
