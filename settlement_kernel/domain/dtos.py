"""
Data transfer objects (``settlement_kernel.domain.dtos``).

Frozen snapshots returned by services and selectors.  ORM rows never leave
the kernel; callers receive these instead.

Money and hours stay ``Decimal`` on the DTO.  ``to_display_dict()`` is the
API boundary where they become plain numbers.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from settlement_kernel.db.types import to_display_float
from settlement_kernel.domain.statuses import (
    DeliverableStatus,
    MilestoneStatus,
    PaymentStatus,
    ProjectType,
    TimeEntryStatus,
)
from settlement_kernel.exceptions import PaymentAmountMismatchError


def _display_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return to_display_float(value)
    if isinstance(value, (UUID,)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_display_value(v) for v in value]
    if hasattr(value, "to_display_dict"):
        return value.to_display_dict()
    return value


class DisplayMixin:
    """Serialize a frozen dataclass for the HTTP layer."""

    def to_display_dict(self) -> dict[str, Any]:
        return {f.name: _display_value(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class ContractDTO(DisplayMixin):
    """The parties and pricing of a signed contract."""

    id: UUID
    project_id: UUID
    project_type: ProjectType
    business_id: UUID
    talent_id: UUID
    hourly_rate: Decimal | None
    currency: str


@dataclass(frozen=True)
class DeliverableDTO(DisplayMixin):
    id: UUID
    milestone_id: UUID
    title: str
    description: str | None
    file_url: str | None
    status: DeliverableStatus
    created_at: datetime | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True)
class TimeEntryDTO(DisplayMixin):
    id: UUID
    contract_id: UUID
    milestone_id: UUID | None
    date: date
    hours: Decimal
    description: str
    status: TimeEntryStatus
    created_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True)
class MilestoneDTO(DisplayMixin):
    id: UUID
    contract_id: UUID
    title: str
    description: str | None
    amount: Decimal
    order: int
    status: MilestoneStatus
    due_date: date | None = None
    created_at: datetime | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True)
class PaymentDTO(DisplayMixin):
    """A payment record.

    Guarantees: ``net_amount == amount - platform_fee`` at construction.
    """

    id: UUID
    contract_id: UUID
    milestone_id: UUID | None
    payer_id: UUID
    payee_id: UUID
    amount: Decimal
    platform_fee: Decimal
    net_amount: Decimal
    status: PaymentStatus
    transfer_id: str | None = None
    processed_at: datetime | None = None
    failure_reason: str | None = None
    period_start: date | None = None
    period_end: date | None = None
    total_hours: Decimal | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.amount - self.platform_fee != self.net_amount:
            raise PaymentAmountMismatchError(
                self.amount, self.platform_fee, self.net_amount,
            )
