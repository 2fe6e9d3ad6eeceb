"""
Tests for the per-launch state machine in both execution modes.

Run: cd backend && uv run python tests/test_handler.py
"""

import asyncio
import functools
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fakes import COLLECTION, FACTORY, HOOK, ONE_ETH, TOKEN_A, WALLET, FakeChainClient

from strategy_sniper.context import SniperContext
from strategy_sniper.handler import LaunchHandler
from strategy_sniper.models import ExecutionMode, LaunchEvent, LaunchState as S

NOW = 1_700_000_000
AMOUNT_IN = 5 * 10**16

EVENT = LaunchEvent(
    collection=COLLECTION,
    token=TOKEN_A,
    name="Strategy",
    symbol="STRAT",
    source="standard",
)


def _handle(client: FakeChainClient, mode: ExecutionMode, check_balance: bool = True):
    context = SniperContext(
        client=client,
        mode=mode,
        amount_in=AMOUNT_IN,
        receiver=WALLET,
        check_balance=check_balance,
    )
    handler = LaunchHandler(context, clock=lambda: NOW)
    resolve_hook = functools.partial(client.hook_address, FACTORY)
    return asyncio.run(handler.handle(EVENT, resolve_hook))


def test_fast_mode_skips_checks() -> None:
    """Fast: no pool read, no simulation, minOut 0, 60s deadline."""
    client = FakeChainClient()
    attempt = _handle(client, ExecutionMode.FAST)

    assert attempt.states == [
        S.DETECTED, S.HOOK_RESOLVED, S.POOL_KEY_BUILT, S.GAS_PRICED, S.SUBMITTED, S.CONFIRMED,
    ]
    assert "get_slot0" not in client.calls
    assert "simulate_swap" not in client.calls
    _, intent, gas = client.sent[0]
    assert intent.min_amount_out == 0
    assert intent.deadline == NOW + 60
    assert intent.amount_in == AMOUNT_IN
    assert intent.zero_for_one is True
    assert intent.receiver == WALLET
    assert gas.multiplier_pct == 200
    assert attempt.pool_key.hooks == HOOK
    assert attempt.outcome.succeeded
    print("  [PASS] fast_mode_skips_checks")


def test_safe_mode_verifies_and_simulates() -> None:
    """Safe: pool read and dry run happen before the send, 180s deadline."""
    client = FakeChainClient(delta=(-AMOUNT_IN, 123_456_789))
    attempt = _handle(client, ExecutionMode.SAFE)

    assert attempt.states == [
        S.DETECTED, S.HOOK_RESOLVED, S.POOL_KEY_BUILT, S.POOL_VERIFIED,
        S.SIMULATED, S.GAS_PRICED, S.SUBMITTED, S.CONFIRMED,
    ]
    calls = client.calls
    assert calls.index("get_slot0") < calls.index("simulate_swap") < calls.index("send_swap")
    _, intent, gas = client.sent[0]
    assert intent.min_amount_out == 111_111_110
    assert intent.deadline == NOW + 180
    assert gas.multiplier_pct == 120
    print("  [PASS] safe_mode_verifies_and_simulates")


def test_safe_mode_missing_pool_aborts() -> None:
    """Uninitialized pool: no simulation, no transaction."""
    client = FakeChainClient(slot0=(0, 0, 0, 0))
    attempt = _handle(client, ExecutionMode.SAFE)

    assert attempt.states == [S.DETECTED, S.HOOK_RESOLVED, S.POOL_KEY_BUILT, S.ABORTED]
    assert "simulate_swap" not in client.calls
    assert client.sent == []
    assert attempt.outcome is None
    assert "not initialized" in attempt.abort_reason
    print("  [PASS] safe_mode_missing_pool_aborts")


def test_safe_mode_simulation_failure_still_sends() -> None:
    client = FakeChainClient()
    client.fail["simulate_swap"] = RuntimeError("execution reverted")
    attempt = _handle(client, ExecutionMode.SAFE)
    assert attempt.state is S.CONFIRMED
    assert client.sent[0][1].min_amount_out == 0
    print("  [PASS] safe_mode_simulation_failure_still_sends")


def test_hook_failure_aborts() -> None:
    client = FakeChainClient()
    client.fail["hook_address"] = RuntimeError("call reverted")
    attempt = _handle(client, ExecutionMode.FAST)
    assert attempt.states == [S.DETECTED, S.ABORTED]
    assert client.sent == []
    assert "hook address" in attempt.abort_reason
    print("  [PASS] hook_failure_aborts")


def test_insufficient_balance_aborts() -> None:
    client = FakeChainClient(balance=ONE_ETH // 100)
    attempt = _handle(client, ExecutionMode.FAST)
    assert attempt.state is S.ABORTED
    assert S.SUBMITTED not in attempt.states
    assert client.sent == []
    print("  [PASS] insufficient_balance_aborts")


def test_balance_check_disabled() -> None:
    client = FakeChainClient(balance=0)
    attempt = _handle(client, ExecutionMode.FAST, check_balance=False)
    assert "get_balance" not in client.calls
    assert attempt.state is S.CONFIRMED
    print("  [PASS] balance_check_disabled")


def test_reverted_swap_ends_failed() -> None:
    client = FakeChainClient(receipt={"status": 0, "blockNumber": 1, "gasUsed": 1})
    attempt = _handle(client, ExecutionMode.FAST)
    assert attempt.states[-2:] == [S.SUBMITTED, S.FAILED]
    assert not attempt.outcome.succeeded
    assert len(client.sent) == 1
    print("  [PASS] reverted_swap_ends_failed")


def test_balance_read_failure_aborts() -> None:
    """An RPC error while reading the balance aborts the attempt instead of escaping."""
    client = FakeChainClient()
    client.fail["get_balance"] = ConnectionError("rpc timeout")
    attempt = _handle(client, ExecutionMode.FAST)
    assert attempt.state is S.ABORTED
    assert S.SUBMITTED not in attempt.states
    assert client.sent == []
    assert "rpc timeout" in attempt.abort_reason
    print("  [PASS] balance_read_failure_aborts")


if __name__ == "__main__":
    print("=== test_handler.py ===")
    test_fast_mode_skips_checks()
    test_safe_mode_verifies_and_simulates()
    test_safe_mode_missing_pool_aborts()
    test_safe_mode_simulation_failure_still_sends()
    test_hook_failure_aborts()
    test_insufficient_balance_aborts()
    test_balance_read_failure_aborts()
    test_balance_check_disabled()
    test_reverted_swap_ends_failed()
    print("\nAll handler tests passed.")
