from decimal import Decimal, getcontext

from .config import BPS_DENOMINATOR

# Set high precision for Decimal operations
getcontext().prec = 50

# Pre-compute 2^96 as Decimal for price conversions
Q96 = Decimal(2 ** 96)


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> Decimal:
    """
    Convert sqrtPriceX96 to human-readable price (token1 per token0).

    sqrtPriceX96 = sqrt(price) * 2^96
    price = (sqrtPriceX96 / 2^96)^2
    """
    sqrt_price = Decimal(sqrt_price_x96) / Q96
    return sqrt_price ** 2


def apply_slippage(delta: int, slippage_bps: int) -> int:
    """
    Minimum acceptable output for a swap that is expected to return |delta|.

    minOut = floor(|delta| * (10000 - bps) / 10000), integer-only so that
    large token amounts are not rounded through floats.
    """
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"slippage_bps {slippage_bps} outside [0, {BPS_DENOMINATOR}]")
    return abs(delta) * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def apply_multiplier(value: int, multiplier_pct: int) -> int:
    """Scale an integer wei amount by a percentage (200 -> 2x)."""
    return value * multiplier_pct // 100
