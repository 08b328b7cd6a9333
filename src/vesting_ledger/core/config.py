"""
Vesting Ledger Configuration

Supports testnet and mainnet with separate configurations.

All knobs are read from environment variables:
- VESTING_NETWORK         testnet | mainnet (default: testnet)
- VESTING_PERIOD_SECONDS  length of one linear accrual step (default: 30 days)
- VESTING_MAX_BATCH_SIZE  maximum entries per activation call (default: 1024)
- VESTING_LOG_LEVEL       logging level for setup_logging (default: INFO)
- VESTING_LOG_FILE        optional JSON log file path
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Mapping, Optional

from .ledger_exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


# One vesting period is a fixed calendar unit of 30 days
DEFAULT_PERIOD_SECONDS = 30 * 24 * 60 * 60
DEFAULT_MAX_BATCH_SIZE = 1024

BPS_DENOMINATOR = 10_000
UINT64_MAX = 2**64 - 1
UINT256_MAX = 2**256 - 1


def _get_int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw, 10)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}",
            details={"env_var": name},
        ) from exc
    if value <= 0:
        raise ConfigurationError(
            f"{name} must be positive, got {value}",
            details={"env_var": name},
        )
    return value


class TestnetConfig:
    """Testnet Configuration (local simulations, shortened periods allowed)"""

    __test__ = False  # not a pytest test class

    NETWORK_TYPE = NetworkType.TESTNET
    VESTING_PERIOD_SECONDS = DEFAULT_PERIOD_SECONDS
    MAX_BATCH_SIZE = DEFAULT_MAX_BATCH_SIZE
    LOG_LEVEL = "INFO"
    LOG_FILE: Optional[str] = None


class MainnetConfig:
    """Mainnet Configuration (production schedules)"""

    NETWORK_TYPE = NetworkType.MAINNET
    VESTING_PERIOD_SECONDS = DEFAULT_PERIOD_SECONDS
    MAX_BATCH_SIZE = DEFAULT_MAX_BATCH_SIZE
    LOG_LEVEL = "INFO"
    LOG_FILE: Optional[str] = None


def load_config(
    network: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> type:
    """
    Build a config class for the requested network from environment overrides.

    Args:
        network: "testnet" or "mainnet" (default: VESTING_NETWORK or testnet)
        env: mapping to read variables from (default: os.environ)

    Returns:
        A subclass of TestnetConfig or MainnetConfig carrying resolved values

    Raises:
        ConfigurationError: If a value is malformed, or mainnet is given a
            non-standard vesting period
    """
    env = os.environ if env is None else env
    network = (network or env.get("VESTING_NETWORK", "testnet")).strip().lower()

    if network == NetworkType.MAINNET.value:
        base = MainnetConfig
    elif network == NetworkType.TESTNET.value:
        base = TestnetConfig
    else:
        raise ConfigurationError(
            f"Unknown network {network!r}; expected 'testnet' or 'mainnet'",
            details={"env_var": "VESTING_NETWORK"},
        )

    period = _get_int_env(env, "VESTING_PERIOD_SECONDS", base.VESTING_PERIOD_SECONDS)
    if base is MainnetConfig and period != DEFAULT_PERIOD_SECONDS:
        raise ConfigurationError(
            "CRITICAL: VESTING_PERIOD_SECONDS cannot be overridden on mainnet",
            details={"env_var": "VESTING_PERIOD_SECONDS", "value": period},
        )
    if period != DEFAULT_PERIOD_SECONDS:
        logger.warning(
            "Using non-standard vesting period of %d seconds",
            period,
            extra={"event": "config.period_override", "period": period},
        )

    overrides = {
        "VESTING_PERIOD_SECONDS": period,
        "MAX_BATCH_SIZE": _get_int_env(env, "VESTING_MAX_BATCH_SIZE", base.MAX_BATCH_SIZE),
        "LOG_LEVEL": env.get("VESTING_LOG_LEVEL", base.LOG_LEVEL).strip().upper() or base.LOG_LEVEL,
        "LOG_FILE": env.get("VESTING_LOG_FILE", "").strip() or base.LOG_FILE,
    }
    return type(base.__name__, (base,), overrides)


# Select config based on network
NETWORK = os.getenv("VESTING_NETWORK", "testnet")  # Default to testnet for safety
Config = load_config(NETWORK)

# Export config
__all__ = [
    "Config",
    "NetworkType",
    "TestnetConfig",
    "MainnetConfig",
    "load_config",
    "DEFAULT_PERIOD_SECONDS",
    "DEFAULT_MAX_BATCH_SIZE",
    "BPS_DENOMINATOR",
    "UINT64_MAX",
    "UINT256_MAX",
]
