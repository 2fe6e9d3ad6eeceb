"""
Per-launch orchestration.

Each launch event runs this state machine once, in its own task:

    DETECTED -> HOOK_RESOLVED -> POOL_KEY_BUILT
        -> [SAFE only: POOL_VERIFIED -> SIMULATED]
        -> GAS_PRICED -> SUBMITTED -> CONFIRMED | FAILED

Attempt-aborting errors (hook lookup, missing pool, balance) end in ABORTED
before anything is sent. There is no retry and no re-entry.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace

from .context import SniperContext
from .errors import AttemptAbortedError, HookResolutionError
from .executor import check_balance, execute_swap
from .gas import build_gas_policy
from .log_setup import set_launch_id
from .models import LaunchAttempt, LaunchEvent, LaunchState, SwapIntent
from .pool_key import build_pool_key
from .slippage import simulate_min_out, verify_pool

logger = logging.getLogger(__name__)

HookResolver = Callable[[], Awaitable[str]]


class LaunchHandler:
    """Turns launch events into at most one swap each, per the process-wide mode."""

    def __init__(self, context: SniperContext, clock: Callable[[], float] = time.time) -> None:
        self.context = context
        self._clock = clock

    def _enter(self, attempt: LaunchAttempt, state: LaunchState) -> None:
        attempt.states.append(state)
        logger.info("[%s] %s", attempt.event.symbol, state.value)

    async def handle(self, event: LaunchEvent, resolve_hook: HookResolver) -> LaunchAttempt:
        set_launch_id(f"{event.symbol}:{event.token}")
        attempt = LaunchAttempt(event=event, mode=self.context.mode)

        logger.info(
            "New token launch detected: token=%s name=%s symbol=%s collection=%s "
            "source=%s range=%s tx=%s block=%s",
            event.token, event.name, event.symbol, event.collection,
            event.source, event.id_range, event.tx_hash, event.block_number,
        )
        self._enter(attempt, LaunchState.DETECTED)

        try:
            await self._run(attempt, resolve_hook)
        except AttemptAbortedError as e:
            attempt.abort_reason = str(e)
            logger.error("Attempt aborted, no swap submitted: %s %s", e, e.context)
            self._enter(attempt, LaunchState.ABORTED)
        return attempt

    async def _run(self, attempt: LaunchAttempt, resolve_hook: HookResolver) -> None:
        ctx = self.context
        policy = ctx.policy
        event = attempt.event

        try:
            hooks = await resolve_hook()
        except Exception as e:
            raise HookResolutionError(
                f"Failed to get hook address: {e}", source=event.source, token=event.token
            ) from e
        logger.info("Hook address resolved: %s", hooks)
        self._enter(attempt, LaunchState.HOOK_RESOLVED)

        key, zero_for_one = build_pool_key(event.token, hooks)
        attempt.pool_key = key
        logger.info("PoolKey built: %s zeroForOne=%s", key.to_dict(), zero_for_one)
        self._enter(attempt, LaunchState.POOL_KEY_BUILT)

        intent = SwapIntent(
            amount_in=ctx.amount_in,
            min_amount_out=0,
            zero_for_one=zero_for_one,
            receiver=ctx.receiver,
            deadline=int(self._clock()) + policy.deadline_seconds,
        )

        if policy.verify_pool:
            await verify_pool(ctx.client, key)
            self._enter(attempt, LaunchState.POOL_VERIFIED)

        if policy.simulate:
            min_out = await simulate_min_out(ctx.client, key, intent)
            intent = replace(intent, min_amount_out=min_out)
            self._enter(attempt, LaunchState.SIMULATED)

        attempt.intent = intent

        gas = await build_gas_policy(ctx.client, key, intent, policy)
        attempt.gas = gas
        self._enter(attempt, LaunchState.GAS_PRICED)

        if ctx.check_balance:
            await check_balance(ctx.client, intent.amount_in, token=event.token)

        logger.info(
            "%s sniping: %d wei -> %s minOut=%d deadline=%d",
            ctx.mode.value.upper(), intent.amount_in, event.token,
            intent.min_amount_out, intent.deadline,
        )
        self._enter(attempt, LaunchState.SUBMITTED)
        outcome = await execute_swap(
            ctx.client,
            key,
            intent,
            gas,
            preflight_balance=False,
            receipt_timeout=ctx.receipt_timeout,
            token=event.token,
            source=event.source,
            mode=ctx.mode.value,
        )
        attempt.outcome = outcome
        self._enter(
            attempt, LaunchState.CONFIRMED if outcome.succeeded else LaunchState.FAILED
        )
