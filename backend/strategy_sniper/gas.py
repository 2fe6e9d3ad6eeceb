"""
Gas pricing for launch swaps.

Price comes from current network fee data scaled by the mode multiplier;
limit comes from a buffered on-chain estimate. Both fall back to constants
instead of failing, since a launch swap must go out even on a flaky node.
"""

import logging

from web3 import Web3

from .config import FLOOR_GAS_PRICE_WEI, GAS_ESTIMATE_BUFFER_PCT, ModePolicy
from .amm_math import apply_multiplier
from .models import GasLimitSource, GasPolicy, PoolKey, SwapIntent

logger = logging.getLogger(__name__)


def _gwei(wei: int | None) -> str:
    return f"{Web3.from_wei(wei or 0, 'gwei')} gwei"


async def price_gas(client, policy: ModePolicy) -> tuple[int | None, int]:
    """
    Priority gas price for this attempt.

    Returns:
        Tuple of (base_price, gas_price). base_price is None when the node
        returned no fee data and the floor price was used instead.
    """
    try:
        base_price = await client.gas_price()
    except Exception:
        logger.warning("Fee data query failed, using floor price", exc_info=True)
        base_price = None

    gas_price = apply_multiplier(base_price or FLOOR_GAS_PRICE_WEI, policy.gas_multiplier_pct)
    logger.info(
        "Network base gas price: %s, using priority gas price: %s (x%.2f)",
        _gwei(base_price), _gwei(gas_price), policy.gas_multiplier_pct / 100,
    )
    return base_price, gas_price


async def gas_limit(client, key: PoolKey, intent: SwapIntent, policy: ModePolicy) -> tuple[int, GasLimitSource]:
    """Buffered gas estimate, or the mode's fixed limit when estimation fails."""
    try:
        estimate = await client.estimate_swap_gas(key, intent)
    except Exception as e:
        # Reverts here are common while the launch tx is still landing
        logger.warning(
            "Gas estimation failed (%s), using fallback limit %d", e, policy.fallback_gas_limit
        )
        return policy.fallback_gas_limit, GasLimitSource.FALLBACK

    if estimate <= 0:
        return policy.fallback_gas_limit, GasLimitSource.FALLBACK
    limit = estimate * (100 + GAS_ESTIMATE_BUFFER_PCT) // 100
    logger.info("Gas estimate %d, limit with %d%% buffer: %d", estimate, GAS_ESTIMATE_BUFFER_PCT, limit)
    return limit, GasLimitSource.ESTIMATED


async def build_gas_policy(client, key: PoolKey, intent: SwapIntent, policy: ModePolicy) -> GasPolicy:
    """Price and limit for one attempt. Never raises for node-side failures."""
    base_price, gas_price = await price_gas(client, policy)
    limit, source = await gas_limit(client, key, intent, policy)
    return GasPolicy(
        base_price=base_price,
        multiplier_pct=policy.gas_multiplier_pct,
        gas_price=gas_price,
        gas_limit=limit,
        limit_source=source,
    )
