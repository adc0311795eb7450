"""
Fee Engine - Platform fee charged to talent on completed work.

The marketplace keeps a flat percentage of every gross payment.  Unless the
talent is tax exempt (flagged, or registered for GST/HST), sales tax for
the talent's province is charged on top of that fee.  The talent receives
``gross - total_fee``.

Pure functions with no I/O - the fee schedule is provided at construction.

Usage:
    from settlement_config import get_active_config
    from settlement_engines.fees import ProvincialFeeCalculator

    calculator = ProvincialFeeCalculator(get_active_config().fees)
    breakdown = calculator.calculate_talent_platform_fee(
        Decimal("500.00"), "ON", has_tax_exemption=False,
    )
    print(breakdown.base_fee)    # 40.00
    print(breakdown.tax_amount)  # 5.20
    print(breakdown.total_fee)   # 45.20
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from settlement_config.schema import FeeSchedule
from settlement_engines.tracer import traced_engine
from settlement_kernel.db.types import ZERO, round_money
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.fees")

EXEMPT_REASON = "GST/HST registered business - exempt from tax on platform fees"
UNKNOWN_PROVINCE_REASON = "Province not found - applied default {rate}% GST"


@dataclass(frozen=True)
class FeeBreakdown:
    """
    Fee charged to the talent on one gross payment.

    Guarantees:
        - total_fee == base_fee + tax_amount.
        - All amounts are rounded to cents.
    """

    base_fee: Decimal
    tax_amount: Decimal
    total_fee: Decimal
    exempt_from_tax: bool = False
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.base_fee + self.tax_amount != self.total_fee:
            raise ValueError(
                f"Fee breakdown does not add up: {self.base_fee} + "
                f"{self.tax_amount} != {self.total_fee}"
            )

    @property
    def platform_fee(self) -> Decimal:
        """The amount deducted from the talent's gross.  Includes tax."""
        return self.total_fee

    def net_of(self, gross_amount: Decimal) -> Decimal:
        """What the talent receives out of ``gross_amount``."""
        return gross_amount - self.total_fee


@runtime_checkable
class FeeCalculator(Protocol):
    """Computes the platform fee charged to a talent on a gross payment."""

    def calculate_talent_platform_fee(
        self,
        gross_amount: Decimal,
        province_code: str,
        has_tax_exemption: bool,
    ) -> FeeBreakdown:
        ...


class ProvincialFeeCalculator:
    """
    Flat platform fee plus Canadian provincial sales tax on the fee.

    Contract:
        gross_amount is a non-negative Decimal.  Unknown provinces fall back
        to the schedule's default tax rate (GST only).
    """

    def __init__(self, schedule: FeeSchedule):
        self._schedule = schedule

    @property
    def schedule(self) -> FeeSchedule:
        return self._schedule

    @traced_engine("fees", "1.0", fingerprint_fields=("gross_amount", "province_code", "has_tax_exemption"))
    def calculate_talent_platform_fee(
        self,
        gross_amount: Decimal,
        province_code: str,
        has_tax_exemption: bool = False,
    ) -> FeeBreakdown:
        if gross_amount < ZERO:
            raise ValueError(f"Gross amount cannot be negative: {gross_amount}")

        base_fee = round_money(gross_amount * self._schedule.platform_fee_rate)

        if has_tax_exemption:
            return FeeBreakdown(
                base_fee=base_fee,
                tax_amount=round_money(ZERO),
                total_fee=base_fee,
                exempt_from_tax=True,
                reason=EXEMPT_REASON,
            )

        rate = self._schedule.rate_for(province_code)
        if rate is None:
            default_rate = self._schedule.default_tax_rate
            logger.info(
                "fee_province_unknown",
                extra={"province_code": province_code, "default_tax_rate": str(default_rate)},
            )
            tax_amount = round_money(base_fee * default_rate)
            return FeeBreakdown(
                base_fee=base_fee,
                tax_amount=tax_amount,
                total_fee=base_fee + tax_amount,
                reason=UNKNOWN_PROVINCE_REASON.format(
                    rate=format((default_rate * 100).normalize(), "f"),
                ),
            )

        tax_amount = round_money(base_fee * rate.total_rate)
        return FeeBreakdown(
            base_fee=base_fee,
            tax_amount=tax_amount,
            total_fee=base_fee + tax_amount,
        )


class FlatRateFeeCalculator:
    """A single percentage with no tax.  For tests and simple deployments."""

    def __init__(self, rate: Decimal):
        if not ZERO <= rate < Decimal("1"):
            raise ValueError(f"Fee rate must be in [0, 1): {rate}")
        self._rate = rate

    def calculate_talent_platform_fee(
        self,
        gross_amount: Decimal,
        province_code: str,
        has_tax_exemption: bool = False,
    ) -> FeeBreakdown:
        fee = round_money(gross_amount * self._rate)
        return FeeBreakdown(base_fee=fee, tax_amount=round_money(ZERO), total_fee=fee)
