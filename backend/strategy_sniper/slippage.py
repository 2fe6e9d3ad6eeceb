import logging
from dataclasses import replace

from .amm_math import apply_slippage, sqrt_price_x96_to_price
from .config import SLIPPAGE_TOLERANCE_BPS
from .errors import PoolNotFoundError
from .models import PoolKey, SwapIntent
from .pool_key import compute_pool_id, token_leg

logger = logging.getLogger(__name__)


async def verify_pool(client, key: PoolKey) -> tuple[int, int]:
    """
    Check that the pool behind key is initialized.

    :param client: ChainClient (or anything with get_slot0)
    :param key: Pool key built for the launch
    :return: (sqrtPriceX96, tick) of the live pool
    :raises PoolNotFoundError: read failed or pool not initialized
    """
    pool_id = "0x" + compute_pool_id(key).hex()
    try:
        sqrt_price_x96, tick, _, _ = await client.get_slot0(key)
    except Exception as e:
        raise PoolNotFoundError(
            f"Pool state read failed: {e}", pool_id=pool_id, pool_key=key.to_dict()
        ) from e

    if sqrt_price_x96 == 0:
        raise PoolNotFoundError(
            "Pool not initialized", pool_id=pool_id, pool_key=key.to_dict()
        )

    # sqrtPriceX96 always encodes currency1/currency0
    logger.info(
        "Pool exists: id=%s sqrtPriceX96=%d tick=%d price=%s",
        pool_id, sqrt_price_x96, tick, sqrt_price_x96_to_price(sqrt_price_x96),
    )
    return sqrt_price_x96, tick


async def simulate_min_out(
    client,
    key: PoolKey,
    intent: SwapIntent,
    slippage_bps: int = SLIPPAGE_TOLERANCE_BPS,
) -> int:
    """
    Dry-run the swap with minOut = 0 and derive a slippage-protected minOut.

    :param intent: The swap as it would be sent; its min_amount_out is ignored
    :return: floor(|token delta| * (1 - bps/10000)), or 0 if the dry run fails
    """
    dry_run = replace(intent, min_amount_out=0)
    try:
        delta = await client.simulate_swap(key, dry_run)
    except Exception as e:
        logger.warning("Simulation failed, using minOut = 0: %s", e)
        return 0

    tokens_out = abs(token_leg(delta, intent.zero_for_one))
    min_out = apply_slippage(tokens_out, slippage_bps)
    logger.info(
        "Simulated %d tokens out, minOut with %.1f%% slippage: %d",
        tokens_out, slippage_bps / 100, min_out,
    )
    return min_out
