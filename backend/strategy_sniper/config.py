"""
Configuration for the strategy launch sniper.

Centralizes protocol constants (pool parameters, gas and deadline policy)
and loads the process settings from the environment / .env file.
"""

import math
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import find_dotenv, load_dotenv
from web3 import Web3

from .errors import ConfigError
from .models import ExecutionMode

# ─── Pool Parameters (fixed by the strategy factory) ───

NATIVE_CURRENCY = "0x0000000000000000000000000000000000000000"  # Native ETH in V4
POOL_FEE = 0  # uint24, hook charges the fee
TICK_SPACING = 60  # int24

# ─── Slippage ───

SLIPPAGE_TOLERANCE_BPS = 1000  # 10%
BPS_DENOMINATOR = 10_000

# ─── Gas Policy ───

FLOOR_GAS_PRICE_WEI = Web3.to_wei(50, "gwei")  # used when the node returns no fee data
GAS_ESTIMATE_BUFFER_PCT = 20

# ─── Fast/Safe Mode Policy ───


@dataclass(frozen=True)
class ModePolicy:
    """Per-mode execution knobs."""
    deadline_seconds: int
    gas_multiplier_pct: int
    fallback_gas_limit: int
    verify_pool: bool
    simulate: bool


MODE_POLICIES = {
    ExecutionMode.FAST: ModePolicy(
        deadline_seconds=60,
        gas_multiplier_pct=200,
        fallback_gas_limit=2_000_000,
        verify_pool=False,
        simulate=False,
    ),
    ExecutionMode.SAFE: ModePolicy(
        deadline_seconds=180,
        gas_multiplier_pct=120,
        fallback_gas_limit=1_500_000,
        verify_pool=True,
        simulate=True,
    ),
}

# Fast mode has no slippage protection; amounts above this get a warning
FAST_MODE_WARN_ETH = Decimal("0.1")

DEFAULT_ETH_AMOUNT_IN = "0.05"
DEFAULT_RECEIPT_TIMEOUT = 120.0

REQUIRED_ENV = (
    "RPC_WSS",
    "PRIVATE_KEY",
    "FACTORY_ADDRESS",
    "ROUTER_ADDRESS",
    "STATE_VIEW_ADDRESS",
)


def policy_for(mode: ExecutionMode) -> ModePolicy:
    return MODE_POLICIES[mode]


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, validated before any connection is opened."""
    rpc_wss: str
    private_key: str
    factory_address: str
    router_address: str
    state_view_address: str
    range_factory_address: str | None
    eth_amount_in: Decimal
    mode: ExecutionMode
    check_balance: bool = True
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    log_level: str = "INFO"

    @property
    def amount_in_wei(self) -> int:
        return int(Web3.to_wei(self.eth_amount_in, "ether"))

    @property
    def policy(self) -> ModePolicy:
        return policy_for(self.mode)

    def masked(self) -> dict[str, str]:
        """Launch parameters safe to log."""
        key = self.private_key
        return {
            "RPC_WSS": self.rpc_wss,
            "PRIVATE_KEY": f"{key[:6]}...{key[-4:]}" if key else "Not set",
            "FACTORY_ADDRESS": self.factory_address,
            "RANGE_FACTORY_ADDRESS": self.range_factory_address or "",
            "ROUTER_ADDRESS": self.router_address,
            "STATE_VIEW_ADDRESS": self.state_view_address,
            "ETH_AMOUNT_IN": str(self.eth_amount_in),
            "SNIPE_MODE": self.mode.value,
        }


def parse_mode(value: str) -> ExecutionMode:
    try:
        return ExecutionMode(value.strip().lower())
    except ValueError:
        raise ConfigError(
            f"Invalid SNIPE_MODE {value!r}, expected 'fast' or 'safe'", field="SNIPE_MODE"
        ) from None


def _parse_address(name: str, value: str) -> str:
    if not Web3.is_address(value):
        raise ConfigError(f"{name} is not a valid address: {value!r}", field=name)
    return Web3.to_checksum_address(value)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}", field=name)


def settings_from_env(env: dict[str, str] | None = None, mode: str | None = None) -> Settings:
    """
    Build Settings from a mapping of environment variables.

    Args:
        env: Variables to read (defaults to os.environ)
        mode: Overrides SNIPE_MODE when given

    Raises:
        ConfigError: a required value is missing or malformed
    """
    if env is None:
        env = dict(os.environ)

    missing = [name for name in REQUIRED_ENV if not env.get(name)]
    if missing:
        raise ConfigError(
            f"Missing env vars. Required: {', '.join(REQUIRED_ENV)}", field=",".join(missing)
        )

    raw_amount = env.get("ETH_AMOUNT_IN") or DEFAULT_ETH_AMOUNT_IN
    try:
        amount = Decimal(raw_amount)
    except InvalidOperation:
        raise ConfigError(f"ETH_AMOUNT_IN is not a number: {raw_amount!r}", field="ETH_AMOUNT_IN") from None
    if not amount.is_finite() or amount <= 0:
        raise ConfigError("ETH_AMOUNT_IN must be positive", field="ETH_AMOUNT_IN")

    raw_timeout = env.get("RECEIPT_TIMEOUT") or str(DEFAULT_RECEIPT_TIMEOUT)
    try:
        receipt_timeout = float(raw_timeout)
    except ValueError:
        raise ConfigError(f"RECEIPT_TIMEOUT is not a number: {raw_timeout!r}", field="RECEIPT_TIMEOUT") from None
    if not math.isfinite(receipt_timeout) or receipt_timeout <= 0:
        raise ConfigError("RECEIPT_TIMEOUT must be a positive number of seconds", field="RECEIPT_TIMEOUT")

    range_factory = env.get("RANGE_FACTORY_ADDRESS") or None

    return Settings(
        rpc_wss=env["RPC_WSS"],
        private_key=env["PRIVATE_KEY"],
        factory_address=_parse_address("FACTORY_ADDRESS", env["FACTORY_ADDRESS"]),
        router_address=_parse_address("ROUTER_ADDRESS", env["ROUTER_ADDRESS"]),
        state_view_address=_parse_address("STATE_VIEW_ADDRESS", env["STATE_VIEW_ADDRESS"]),
        range_factory_address=(
            _parse_address("RANGE_FACTORY_ADDRESS", range_factory) if range_factory else None
        ),
        eth_amount_in=amount,
        mode=parse_mode(mode or env.get("SNIPE_MODE") or "fast"),
        check_balance=_parse_bool("CHECK_BALANCE", env.get("CHECK_BALANCE") or "true"),
        receipt_timeout=receipt_timeout,
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )


def load_settings(env_file: str | None = None, mode: str | None = None) -> Settings:
    """Load .env (if present) into the environment, then validate."""
    load_dotenv(env_file or find_dotenv(usecwd=True))
    return settings_from_env(mode=mode)
