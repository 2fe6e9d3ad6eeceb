"""
Swap submission and outcome reporting.

One launch yields at most one transaction: no automatic retries. Every
failure after the balance check comes back as a failed SwapOutcome that
carries enough context for a post-mortem.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from .errors import BalanceCheckError, InsufficientBalanceError, SwapSubmissionError
from .models import (
    FailureDetails,
    FailureReason,
    GasPolicy,
    PoolKey,
    SwapIntent,
    SwapOutcome,
    SwapStatus,
)

logger = logging.getLogger(__name__)


def swap_context(key: PoolKey, intent: SwapIntent, gas: GasPolicy, **extra: Any) -> dict[str, Any]:
    """Everything needed to reconstruct the attempt from the logs alone."""
    return {
        "amount_in": intent.amount_in,
        "min_amount_out": intent.min_amount_out,
        "zero_for_one": intent.zero_for_one,
        "receiver": intent.receiver,
        "deadline": intent.deadline,
        "pool_key": key.to_dict(),
        "gas_price": gas.gas_price,
        "gas_limit": gas.gas_limit,
        "gas_limit_source": gas.limit_source.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }


def describe_error(
    exc: Exception,
    reason: FailureReason,
    tx_hash: str | None,
    context: dict[str, Any],
) -> FailureDetails:
    """Turn a provider exception into FailureDetails."""
    code = None
    data = None
    message = str(exc)
    if isinstance(exc, ContractLogicError):
        message = exc.message or message
        data = exc.data
    elif isinstance(exc, Web3RPCError) and isinstance(exc.rpc_response, dict):
        error = exc.rpc_response.get("error") or {}
        code = error.get("code")
        data = error.get("data")
        message = error.get("message") or message
    return FailureDetails(
        reason=reason,
        message=message,
        code=code,
        data=data,
        tx_hash=tx_hash,
        context=context,
    )


async def check_balance(client, amount_in: int, **context: Any) -> int:
    """
    Raise InsufficientBalanceError when the wallet cannot cover amount_in,
    BalanceCheckError when the balance cannot be read.
    """
    try:
        balance = await client.get_balance(client.address)
    except Exception as e:
        raise BalanceCheckError(
            f"Balance read failed: {e}", wallet=client.address, required=amount_in, **context
        ) from e
    if balance < amount_in:
        raise InsufficientBalanceError(balance, amount_in, wallet=client.address, **context)
    return balance


async def _submit_and_confirm(
    client,
    key: PoolKey,
    intent: SwapIntent,
    gas: GasPolicy,
    receipt_timeout: float,
    context: dict[str, Any],
) -> SwapOutcome:
    try:
        tx_hash = await client.send_swap(key, intent, gas)
    except Exception as e:
        raise SwapSubmissionError(
            describe_error(e, FailureReason.SUBMISSION_ERROR, None, context)
        ) from e

    logger.info("Swap tx submitted: %s", tx_hash)

    try:
        receipt = await client.wait_for_receipt(tx_hash, receipt_timeout)
    except TimeExhausted as e:
        raise SwapSubmissionError(
            describe_error(e, FailureReason.TIMEOUT, tx_hash, context)
        ) from e
    except Exception as e:
        raise SwapSubmissionError(
            describe_error(e, FailureReason.SUBMISSION_ERROR, tx_hash, context)
        ) from e

    if receipt is None:
        raise SwapSubmissionError(FailureDetails(
            reason=FailureReason.NO_RECEIPT,
            message="No receipt returned",
            tx_hash=tx_hash,
            context=context,
        ))

    if receipt.get("status") != 1:
        raise SwapSubmissionError(FailureDetails(
            reason=FailureReason.REVERTED,
            message=f"Transaction reverted in block {receipt.get('blockNumber')}",
            tx_hash=tx_hash,
            receipt=receipt,
            context=context,
        ))

    return SwapOutcome(
        status=SwapStatus.CONFIRMED,
        tx_hash=tx_hash,
        block_number=receipt.get("blockNumber"),
        gas_used=receipt.get("gasUsed"),
    )


async def execute_swap(
    client,
    key: PoolKey,
    intent: SwapIntent,
    gas: GasPolicy,
    preflight_balance: bool = True,
    receipt_timeout: float = 120.0,
    **extra: Any,
) -> SwapOutcome:
    """
    Submit the swap and wait for it to confirm.

    Args:
        client: ChainClient
        key: Pool key of the launch pool
        intent: Swap arguments
        gas: Gas envelope for this attempt
        preflight_balance: Compare wallet balance to amount_in before sending
        receipt_timeout: Seconds to wait for a receipt
        **extra: Extra fields for the failure context (token, source, ...)

    Returns:
        Confirmed or failed SwapOutcome

    Raises:
        InsufficientBalanceError: balance too low; nothing was sent
        BalanceCheckError: balance could not be read; nothing was sent
    """
    context = swap_context(key, intent, gas, wallet=client.address, **extra)

    if preflight_balance:
        await check_balance(client, intent.amount_in, token=extra.get("token"))

    try:
        outcome = await _submit_and_confirm(client, key, intent, gas, receipt_timeout, context)
    except SwapSubmissionError as e:
        details = e.details
        logger.error(
            "Swap failed: reason=%s tx=%s message=%s code=%s context=%s",
            details.reason.value, details.tx_hash, details.message, details.code, details.context,
        )
        return SwapOutcome(
            status=SwapStatus.FAILED,
            tx_hash=details.tx_hash,
            block_number=details.receipt.get("blockNumber") if details.receipt else None,
            gas_used=details.receipt.get("gasUsed") if details.receipt else None,
            failure=details,
        )

    logger.info(
        "Swap confirmed: tx=%s block=%s gasUsed=%s",
        outcome.tx_hash, outcome.block_number, outcome.gas_used,
    )
    return outcome
