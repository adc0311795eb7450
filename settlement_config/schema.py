"""
Settlement configuration schema.

Frozen dataclasses that YAML configuration sets are parsed into.  The
services never see YAML; they receive a ``SettlementConfig`` (or the pieces
of it they need) through their constructors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProvinceTaxRate:
    """Sales tax charged on the platform fee for talent in one province."""

    code: str
    name: str
    tax_type: str  # GST, HST, GST/PST, GST/QST
    gst_rate: Decimal
    provincial_rate: Decimal

    @property
    def total_rate(self) -> Decimal:
        return self.gst_rate + self.provincial_rate

    def __post_init__(self) -> None:
        if len(self.code) != 2:
            raise ValueError(f"Province code must be two letters: {self.code!r}")
        if self.gst_rate < 0 or self.provincial_rate < 0:
            raise ValueError(f"Tax rates for {self.code} must be non-negative")


@dataclass(frozen=True)
class FeeSchedule:
    """Platform fee rate plus the provincial tax table applied to the fee."""

    platform_fee_rate: Decimal
    default_tax_rate: Decimal
    provinces: Mapping[str, ProvinceTaxRate] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.platform_fee_rate < Decimal("1"):
            raise ValueError(
                f"platform_fee_rate must be in [0, 1): {self.platform_fee_rate}"
            )
        if self.default_tax_rate < 0:
            raise ValueError(f"default_tax_rate must be non-negative: {self.default_tax_rate}")
        if not isinstance(self.provinces, MappingProxyType):
            object.__setattr__(self, "provinces", MappingProxyType(dict(self.provinces)))

    def rate_for(self, province_code: str | None) -> ProvinceTaxRate | None:
        """Look up a province case-insensitively; None when unknown."""
        if not province_code:
            return None
        return self.provinces.get(province_code.upper())


# ---------------------------------------------------------------------------
# Defaults, transfers, settlement policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Defaults:
    """Values used when a profile or request leaves something unset."""

    province: str = "ON"
    currency: str = "CAD"
    rejection_reason: str = "No reason provided"


@dataclass(frozen=True)
class TransferSettings:
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive: {self.timeout_seconds}")


@dataclass(frozen=True)
class SettlementPolicy:
    # Refuse a period that already has a PROCESSING or COMPLETED payment
    reject_duplicate_periods: bool = True


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SettlementConfig:
    """A complete, validated configuration set."""

    config_id: str
    version: int
    fees: FeeSchedule
    defaults: Defaults = field(default_factory=Defaults)
    transfers: TransferSettings = field(default_factory=TransferSettings)
    settlement: SettlementPolicy = field(default_factory=SettlementPolicy)

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id is required")
        if self.fees.provinces and self.fees.rate_for(self.defaults.province) is None:
            raise ValueError(
                f"Default province {self.defaults.province!r} has no tax rate entry"
            )
