"""
settlement_config -- single public entrypoint for settlement configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  Returns a frozen ``SettlementConfig``.

Architecture position:
    Configuration.  This package sits above ``settlement_kernel`` and below
    ``settlement_engines`` / ``settlement_services`` / ``settlement_modules``.
    The kernel MUST NEVER import from ``settlement_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is absent.
    - ``ValueError`` -- schema validation failures.
"""

from __future__ import annotations

import logging
from pathlib import Path

from settlement_config.loader import load_yaml_file, parse_config
from settlement_config.schema import (
    Defaults,
    FeeSchedule,
    ProvinceTaxRate,
    SettlementConfig,
    SettlementPolicy,
    TransferSettings,
)

_logger = logging.getLogger("settlement_kernel.config")

# Default configuration set
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> SettlementConfig:
    """The ONLY public configuration entrypoint.

    Non-goals:
        - Does NOT cache across calls; services are constructed with the
          config they need and hold it for their lifetime.

    Args:
        config_path: Override path to a YAML configuration set.  Defaults
            to ``settlement_config/sets/default.yaml``.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = parse_config(load_yaml_file(path))

    _logger.info(
        "settlement_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "platform_fee_rate": str(config.fees.platform_fee_rate),
            "province_count": len(config.fees.provinces),
            "transfer_timeout_seconds": config.transfers.timeout_seconds,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "SettlementConfig",
    "FeeSchedule",
    "ProvinceTaxRate",
    "Defaults",
    "TransferSettings",
    "SettlementPolicy",
]
