"""
Data model for launch detection and swap execution.

Launch events come off the chain, pool keys and swap intents are built fresh
per launch, and every attempt ends in a terminal SwapOutcome.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from web3 import Web3

UINT24_MAX = 2**24 - 1
INT24_MIN = -(2**23)
INT24_MAX = 2**23 - 1


class ExecutionMode(Enum):
    """Fast skips pool checks and simulation; Safe runs both."""
    FAST = "fast"
    SAFE = "safe"


class LaunchState(Enum):
    DETECTED = "detected"
    HOOK_RESOLVED = "hook_resolved"
    POOL_KEY_BUILT = "pool_key_built"
    POOL_VERIFIED = "pool_verified"
    SIMULATED = "simulated"
    GAS_PRICED = "gas_priced"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    ABORTED = "aborted"


class GasLimitSource(Enum):
    ESTIMATED = "estimated"
    FALLBACK = "fallback"


class SwapStatus(Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"


class FailureReason(Enum):
    REVERTED = "reverted"
    TIMEOUT = "timeout"
    NO_RECEIPT = "no_receipt"
    SUBMISSION_ERROR = "submission_error"


@dataclass(frozen=True)
class LaunchEvent:
    """A decoded NFTStrategyLaunched / NFTStrategyRangeLaunched log."""
    collection: str
    token: str
    name: str
    symbol: str
    source: str
    id_range: tuple[int, int] | None = None
    tx_hash: str | None = None
    block_number: int | None = None
    log_index: int | None = None

    @property
    def is_ranged(self) -> bool:
        return self.id_range is not None


@dataclass(frozen=True)
class PoolKey:
    """
    Uniswap V4 pool key.

    currency0 must be numerically smaller than currency1; the router rejects
    (or reverses) a swap against a mis-ordered key.
    """
    currency0: str
    currency1: str
    fee: int
    tick_spacing: int
    hooks: str

    def __post_init__(self) -> None:
        if not 0 <= self.fee <= UINT24_MAX:
            raise ValueError(f"fee {self.fee} out of uint24 range")
        if not INT24_MIN <= self.tick_spacing <= INT24_MAX:
            raise ValueError(f"tick spacing {self.tick_spacing} out of int24 range")
        if int(self.currency0, 16) >= int(self.currency1, 16):
            raise ValueError(
                f"currency0 {self.currency0} must sort below currency1 {self.currency1}"
            )

    def as_tuple(self) -> tuple[str, str, int, int, str]:
        """ABI tuple (currency0, currency1, fee, tickSpacing, hooks)."""
        return (
            Web3.to_checksum_address(self.currency0),
            Web3.to_checksum_address(self.currency1),
            self.fee,
            self.tick_spacing,
            Web3.to_checksum_address(self.hooks),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency0": self.currency0,
            "currency1": self.currency1,
            "fee": self.fee,
            "tickSpacing": self.tick_spacing,
            "hooks": self.hooks,
        }


@dataclass(frozen=True)
class SwapIntent:
    """Arguments of a single exact-input swap."""
    amount_in: int
    min_amount_out: int
    zero_for_one: bool
    receiver: str
    deadline: int
    hook_data: bytes = b""


@dataclass(frozen=True)
class GasPolicy:
    """Gas envelope for one attempt. Recomputed per launch."""
    base_price: int | None
    multiplier_pct: int
    gas_price: int
    gas_limit: int
    limit_source: GasLimitSource


@dataclass(frozen=True)
class FailureDetails:
    """Why a submitted swap did not confirm, with whatever the provider told us."""
    reason: FailureReason
    message: str
    code: int | str | None = None
    data: Any = None
    tx_hash: str | None = None
    receipt: dict[str, Any] | None = None
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SwapOutcome:
    status: SwapStatus
    tx_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    failure: FailureDetails | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is SwapStatus.CONFIRMED


@dataclass
class LaunchAttempt:
    """What happened to one launch event, state by state."""
    event: LaunchEvent
    mode: ExecutionMode
    states: list[LaunchState] = field(default_factory=list)
    pool_key: PoolKey | None = None
    intent: SwapIntent | None = None
    gas: GasPolicy | None = None
    outcome: SwapOutcome | None = None
    abort_reason: str | None = None

    @property
    def state(self) -> LaunchState | None:
        return self.states[-1] if self.states else None
