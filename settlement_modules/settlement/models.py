"""
Settlement Domain Models (``settlement_modules.settlement.models``).

Frozen value objects for biweekly settlement of hourly contracts.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from settlement_kernel.domain.dtos import DisplayMixin, TimeEntryDTO


@dataclass(frozen=True)
class PeriodSummary(DisplayMixin):
    """
    What a business would pay for one period of approved hours.

    Guarantees:
        - total_hours is the exact sum over ``time_entries``.
        - net_amount == gross_amount - platform_fee.
        - can_process is True iff total_hours > 0.
    """

    contract_id: UUID
    period_start: date
    period_end: date
    time_entries: tuple[TimeEntryDTO, ...]
    total_hours: Decimal
    hourly_rate: Decimal
    gross_amount: Decimal
    base_fee: Decimal
    tax_amount: Decimal
    platform_fee: Decimal
    net_amount: Decimal
    can_process: bool
    fee_reason: str | None = None

    @property
    def description(self) -> str:
        return f"Biweekly payment for {format(self.total_hours.normalize(), 'f')} hours"
