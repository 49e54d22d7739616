# arbwatch/config.py
"""
Runtime configuration
Loaded once from config/.env (python-dotenv) layered under the process
environment, validated, and frozen.
"""

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values
from web3 import Web3

from arbwatch.dex.routers import QUICK_ROUTER, SUSHI_ROUTER, RouterConfig, Venue
from arbwatch.exceptions import ConfigError
from arbwatch.pairs import DEFAULT_TRADE_SIZE, USDC_LEGACY, WETH

# -----------------------------
# Paths
# -----------------------------
PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_ABI_PATH = PACKAGE_DIR / "abi" / "uniswap_v2_router02_abi.json"

# Relative to the working directory
ENV_PATH = Path("config") / ".env"
DEFAULT_DB_PATH = Path("table.db")

# -----------------------------
# Simulation defaults
# -----------------------------
DEFAULT_MIN_PROFIT_THRESHOLD = Decimal("0.01")  # USDC
DEFAULT_SIMULATED_GAS_COST = Decimal("0.02")    # USDC
DEFAULT_CHECK_INTERVAL_SECS = 10

RPC_SCHEMES = ("http://", "https://")


@dataclass(frozen=True)
class Config:
    rpc_url: str
    quickswap_router: str
    sushiswap_router: str
    weth: str
    usdc: str
    fixed_trade_size: int                # wei of base token
    min_profit_threshold: Decimal        # USDC
    simulated_gas_cost: Decimal          # USDC
    check_interval_secs: int
    abi_path: Path = DEFAULT_ABI_PATH
    db_path: Path = DEFAULT_DB_PATH
    log_level: str = "INFO"

    @property
    def routers(self) -> tuple:
        """(venue A, venue B) call configurations, in comparison order"""
        return (
            RouterConfig(Venue.QUICKSWAP, self.quickswap_router),
            RouterConfig(Venue.SUSHISWAP, self.sushiswap_router),
        )

    @property
    def path(self) -> list:
        return [self.weth, self.usdc]

    def describe(self) -> str:
        """Config summary safe for logs (RPC URL host only)"""
        rpc_host = self.rpc_url.split("://", 1)[-1].split("/", 1)[0]
        return (
            f"rpc={rpc_host} quickswap={self.quickswap_router} sushiswap={self.sushiswap_router} "
            f"path={self.weth}->{self.usdc} trade_size={self.fixed_trade_size} "
            f"min_profit={self.min_profit_threshold} gas={self.simulated_gas_cost} "
            f"interval={self.check_interval_secs}s db={self.db_path}"
        )


# =============================================================================
# PARSERS
# =============================================================================

def _get(values: Mapping[str, Optional[str]], key: str) -> Optional[str]:
    value = values.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _address(values, key: str, default: str) -> str:
    raw = _get(values, key)
    if raw is None:
        return default
    try:
        return Web3.to_checksum_address(raw)
    except (ValueError, TypeError) as e:
        raise ConfigError(f"{key} is not a valid address: {raw!r}") from e


def _positive_int(values, key: str, default: int) -> int:
    raw = _get(values, key)
    if raw is None:
        return default
    try:
        value = int(raw.replace("_", ""))
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be > 0, got {value}")
    return value


def _non_negative_decimal(values, key: str, default: Decimal) -> Decimal:
    raw = _get(values, key)
    if raw is None:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ConfigError(f"{key} must be a decimal number, got {raw!r}") from e
    if not value.is_finite() or value < 0:
        raise ConfigError(f"{key} must be a finite number >= 0, got {raw!r}")
    return value


def _log_level(values) -> str:
    level = (_get(values, "LOG_LEVEL") or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"LOG_LEVEL is not a logging level: {level!r}")
    return level


def config_from_mapping(values: Mapping[str, Optional[str]]) -> Config:
    """Build and validate a Config from string key/values"""
    rpc_url = _get(values, "RPC_URL")
    if not rpc_url:
        raise ConfigError("RPC_URL not set")
    if not rpc_url.startswith(RPC_SCHEMES):
        raise ConfigError(f"RPC_URL must start with one of {RPC_SCHEMES}, got {rpc_url!r}")

    quickswap = _address(values, "QUICKSWAP_ROUTER", QUICK_ROUTER)
    sushiswap = _address(values, "SUSHISWAP_ROUTER", SUSHI_ROUTER)
    if quickswap == sushiswap:
        raise ConfigError("QUICKSWAP_ROUTER and SUSHISWAP_ROUTER must differ")

    weth = _address(values, "WETH_ADDRESS", WETH)
    usdc = _address(values, "USDC_ADDRESS", USDC_LEGACY)
    if weth == usdc:
        raise ConfigError("WETH_ADDRESS and USDC_ADDRESS must differ")

    abi_path = Path(_get(values, "ABI_PATH") or DEFAULT_ABI_PATH)
    db_path = Path(_get(values, "DB_PATH") or DEFAULT_DB_PATH)

    return Config(
        rpc_url=rpc_url,
        quickswap_router=quickswap,
        sushiswap_router=sushiswap,
        weth=weth,
        usdc=usdc,
        fixed_trade_size=_positive_int(values, "FIXED_TRADE_SIZE", DEFAULT_TRADE_SIZE),
        min_profit_threshold=_non_negative_decimal(
            values, "MIN_PROFIT_THRESHOLD", DEFAULT_MIN_PROFIT_THRESHOLD
        ),
        simulated_gas_cost=_non_negative_decimal(
            values, "SIMULATED_GAS_COST", DEFAULT_SIMULATED_GAS_COST
        ),
        check_interval_secs=_positive_int(
            values, "CHECK_INTERVAL_SECS", DEFAULT_CHECK_INTERVAL_SECS
        ),
        abi_path=abi_path,
        db_path=db_path,
        log_level=_log_level(values),
    )


def load_config(
    env_path: Union[str, Path, None] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load configuration from a dotenv file and the environment.
    Non-empty environment variables override values from the file; an
    exported but empty variable leaves the file's value in place.
    The default config/.env may be absent as long as the environment
    supplies RPC_URL; an explicitly given env_path must exist.
    """
    if env_path is None:
        env_path = ENV_PATH
    else:
        env_path = Path(env_path)
        if not env_path.exists():
            raise ConfigError(f".env file not found at {env_path}")
    if environ is None:
        environ = os.environ

    values: Dict[str, Optional[str]] = {}
    if env_path.exists():
        values.update(dotenv_values(env_path))
    values.update((key, value) for key, value in environ.items() if value and value.strip())

    return config_from_mapping(values)
