"""
Settlement Engine - Aggregate approved hours into a payable amount.

Given the approved time entries for one contract and one period, compute
total hours, gross (hours x rate), the talent's platform fee and the net
payout.  Which entries count is decided by the caller; this engine trusts
its input and only does arithmetic.

Pure functions with no I/O.

Usage:
    from settlement_engines.settlement import HourLine, summarize_hours

    summary = summarize_hours(
        lines=[HourLine(date(2024, 1, 2), Decimal("5")), HourLine(date(2024, 1, 3), Decimal("3"))],
        hourly_rate=Decimal("40"),
        fee_calculator=calculator,
        province_code="ON",
        has_tax_exemption=False,
    )
    print(summary.total_hours)   # 8
    print(summary.gross_amount)  # 320.00
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from settlement_engines.fees import FeeBreakdown, FeeCalculator
from settlement_engines.tracer import traced_engine
from settlement_kernel.db.types import ZERO, round_money


@dataclass(frozen=True)
class HourLine:
    """One approved time entry, reduced to what the settlement needs."""

    date: date
    hours: Decimal
    description: str = ""
    time_entry_id: UUID | None = None


@dataclass(frozen=True)
class SettlementFigures:
    """
    Payable figures for one period.

    Guarantees:
        - net_amount == gross_amount - platform_fee.
        - can_process is True iff total_hours > 0.
    """

    total_hours: Decimal
    hourly_rate: Decimal
    gross_amount: Decimal
    fee: FeeBreakdown
    net_amount: Decimal
    lines: tuple[HourLine, ...] = ()

    @property
    def platform_fee(self) -> Decimal:
        return self.fee.platform_fee

    @property
    def can_process(self) -> bool:
        return self.total_hours > ZERO


def total_hours(lines: Sequence[HourLine]) -> Decimal:
    """Exact sum of hours.  An empty sequence sums to zero."""
    return sum((line.hours for line in lines), ZERO)


@traced_engine("settlement", "1.0", fingerprint_fields=("hourly_rate", "province_code", "has_tax_exemption"))
def summarize_hours(
    lines: Sequence[HourLine],
    hourly_rate: Decimal | None,
    fee_calculator: FeeCalculator,
    province_code: str,
    has_tax_exemption: bool,
) -> SettlementFigures:
    """
    Compute the payable figures for a set of approved hours.

    An unset hourly rate is treated as zero: the period then summarizes to
    a zero gross but still reports its hours.
    """
    rate = hourly_rate if hourly_rate is not None else ZERO
    hours = total_hours(lines)
    gross = round_money(hours * rate)
    fee = fee_calculator.calculate_talent_platform_fee(gross, province_code, has_tax_exemption)
    return SettlementFigures(
        total_hours=hours,
        hourly_rate=rate,
        gross_amount=gross,
        fee=fee,
        net_amount=fee.net_of(gross),
        lines=tuple(sorted(lines, key=lambda line: line.date)),
    )
