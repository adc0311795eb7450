"""
Module: settlement_kernel.db.types
Responsibility: Annotated type aliases and utility functions for money and
    hours columns.  Centralizes precision and rounding so that every model
    and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and outer layers.  MUST NOT import from any of them.

Invariants enforced:
    - No floats in computation.  All monetary amounts and hours are Decimal.
      ``to_display_float`` is the only sanctioned float conversion and is
      used for serialization only.
    - round_money() is the ONLY sanctioned rounding function for money.

Failure modes:
    - ValueError from to_decimal() on non-numeric or non-finite input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Logged hours: stored as entered, up to nine decimal places
Hours = Annotated[Decimal, Numeric(20, 9)]

# ISO 4217 currency code
Currency = Annotated[str, String(3)]

MONEY_DECIMAL_PLACES = 2
HOURS_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value: object) -> Decimal:
    """
    Convert a caller-supplied number to Decimal without float artefacts.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.  Booleans are rejected even though they are
    ints.

    Raises:
        ValueError: If value is not numeric or not finite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for monetary values.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)


def to_display_float(value: Decimal | None) -> float | None:
    """Convert a stored Decimal to float for serialization only."""
    if value is None:
        return None
    return float(value)
