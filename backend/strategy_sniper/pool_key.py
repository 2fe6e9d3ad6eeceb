"""
Deterministic Uniswap V4 pool key derivation for ETH -> strategy token swaps.

The factory initializes each strategy pool with the native currency, the new
token, a fixed fee tier and tick spacing, and its hook. The key must be
rebuilt exactly as the factory built it, including currency ordering.
"""

from eth_abi.abi import encode
from web3 import Web3

from .config import NATIVE_CURRENCY, POOL_FEE, TICK_SPACING
from .models import PoolKey


def address_value(address: str) -> int:
    """Address as an unsigned integer (the ordering V4 uses for currencies)."""
    return int(address, 16)


def sort_currencies(a: str, b: str) -> tuple[str, str]:
    """Return (currency0, currency1) with the numerically smaller address first."""
    if address_value(a) == address_value(b):
        raise ValueError(f"Pool currencies must differ, got {a} twice")
    if address_value(a) < address_value(b):
        return a, b
    return b, a


def build_pool_key(
    token: str,
    hooks: str,
    native: str = NATIVE_CURRENCY,
    fee: int = POOL_FEE,
    tick_spacing: int = TICK_SPACING,
) -> tuple[PoolKey, bool]:
    """
    Build the PoolKey for a native/token pool and the swap direction.

    Args:
        token: Strategy token address
        hooks: Hook address of the factory that launched the token
        native: Native-currency sentinel (zero address on mainnet V4)
        fee: Fee tier (uint24)
        tick_spacing: Tick spacing (int24)

    Returns:
        Tuple of (pool_key, zero_for_one). zero_for_one is True when the
        native currency is currency0, i.e. ETH in is a 0 -> 1 swap.
    """
    native = Web3.to_checksum_address(native)
    token = Web3.to_checksum_address(token)
    currency0, currency1 = sort_currencies(native, token)

    key = PoolKey(
        currency0=currency0,
        currency1=currency1,
        fee=fee,
        tick_spacing=tick_spacing,
        hooks=Web3.to_checksum_address(hooks),
    )
    return key, currency0 == native


def compute_pool_id(key: PoolKey) -> bytes:
    """PoolId = keccak256(abi.encode(currency0, currency1, fee, tickSpacing, hooks))."""
    encoded = encode(
        ["address", "address", "uint24", "int24", "address"],
        list(key.as_tuple()),
    )
    return bytes(Web3.keccak(encoded))


def token_leg(delta: tuple[int, int], zero_for_one: bool) -> int:
    """Pick the output (token) side of a BalanceDelta (amount0, amount1)."""
    amount0, amount1 = delta
    return amount1 if zero_for_one else amount0
