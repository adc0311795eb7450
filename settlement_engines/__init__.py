"""
Module: settlement_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for higher layers
    (settlement_services, settlement_modules).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import settlement_kernel.db.types and settlement_config.schema.
    MUST NOT import settlement_services or settlement_modules.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from settlement_engines.fees import ProvincialFeeCalculator
    from settlement_engines.settlement import summarize_hours
"""

from settlement_kernel.logging_config import get_logger

logger = get_logger("engines")

from settlement_engines.fees import (  # noqa: E402
    FeeBreakdown,
    FeeCalculator,
    FlatRateFeeCalculator,
    ProvincialFeeCalculator,
)
from settlement_engines.settlement import (  # noqa: E402
    HourLine,
    SettlementFigures,
    summarize_hours,
    total_hours,
)
from settlement_engines.tracer import compute_input_fingerprint, traced_engine  # noqa: E402

__all__ = [
    "FeeBreakdown",
    "FeeCalculator",
    "FlatRateFeeCalculator",
    "ProvincialFeeCalculator",
    "HourLine",
    "SettlementFigures",
    "summarize_hours",
    "total_hours",
    "traced_engine",
    "compute_input_fingerprint",
]
