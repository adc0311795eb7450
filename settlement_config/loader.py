"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the typed
``settlement_config.schema`` dataclasses.  The single public entry point
for runtime config is ``settlement_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Non-numeric rates  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from settlement_config.schema import (
    Defaults,
    FeeSchedule,
    ProvinceTaxRate,
    SettlementConfig,
    SettlementPolicy,
    TransferSettings,
)
from settlement_kernel.db.types import to_decimal


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_rate(value: Any) -> Decimal:
    """Parse a rate written as a quoted string or a bare YAML number."""
    return to_decimal(value)


def parse_province(code: str, data: dict[str, Any]) -> ProvinceTaxRate:
    return ProvinceTaxRate(
        code=str(code).upper(),
        name=data["name"],
        tax_type=data["tax_type"],
        gst_rate=parse_rate(data["gst_rate"]),
        provincial_rate=parse_rate(data.get("provincial_rate", "0")),
    )


def parse_fee_schedule(data: dict[str, Any]) -> FeeSchedule:
    provinces = {
        str(code).upper(): parse_province(code, entry)
        for code, entry in (data.get("provinces") or {}).items()
    }
    return FeeSchedule(
        platform_fee_rate=parse_rate(data["platform_fee_rate"]),
        default_tax_rate=parse_rate(data.get("default_tax_rate", "0.05")),
        provinces=provinces,
    )


def parse_defaults(data: dict[str, Any]) -> Defaults:
    base = Defaults()
    return Defaults(
        province=str(data.get("province", base.province)).upper(),
        currency=str(data.get("currency", base.currency)).upper(),
        rejection_reason=data.get("rejection_reason", base.rejection_reason),
    )


def parse_config(data: dict[str, Any]) -> SettlementConfig:
    """
    Parse a whole configuration set.

    Only ``fees`` is required; every other section falls back to the
    schema defaults.
    """
    transfers = data.get("transfers") or {}
    settlement = data.get("settlement") or {}
    return SettlementConfig(
        config_id=data.get("config_id", "default"),
        version=int(data.get("version", 1)),
        fees=parse_fee_schedule(data["fees"]),
        defaults=parse_defaults(data.get("defaults") or {}),
        transfers=TransferSettings(
            timeout_seconds=float(
                transfers.get("timeout_seconds", TransferSettings.timeout_seconds)
            ),
        ),
        settlement=SettlementPolicy(
            reject_duplicate_periods=bool(
                settlement.get(
                    "reject_duplicate_periods",
                    SettlementPolicy.reject_duplicate_periods,
                )
            ),
        ),
    )
