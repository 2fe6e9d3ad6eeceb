"""
Tests for ChainClient against a scripted in-memory web3 object.

Covers transport-loss translation and per-account send serialization.
Run: cd backend && uv run python tests/test_chain.py
"""

import asyncio
import os
import sys
from types import SimpleNamespace

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from web3 import Web3
from web3.exceptions import ProviderConnectionError
from websockets.exceptions import ConnectionClosed
from websockets.frames import Close

from fakes import FACTORY, GWEI, TOKEN_A, WALLET

from strategy_sniper.abis import FACTORY_ABI
from strategy_sniper.chain import ChainClient
from strategy_sniper.errors import TransportClosedError
from strategy_sniper.models import GasLimitSource, GasPolicy, SwapIntent
from strategy_sniper.pool_key import build_pool_key, compute_pool_id

ROUTER = Web3.to_checksum_address("0x" + "99" * 20)
STATE_VIEW = Web3.to_checksum_address("0x" + "7f" * 20)
PRIVATE_KEY = "0x" + "11" * 32

KEY, ZERO_FOR_ONE = build_pool_key(TOKEN_A, "0x" + "cc" * 20)
INTENT = SwapIntent(
    amount_in=5 * 10**16, min_amount_out=0, zero_for_one=ZERO_FOR_ONE,
    receiver=WALLET, deadline=1_700_000_060,
)
GAS = GasPolicy(
    base_price=30 * GWEI, multiplier_pct=200, gas_price=60 * GWEI,
    gas_limit=240_000, limit_source=GasLimitSource.ESTIMATED,
)


async def _value(value):
    return value


class StubCall:
    def __init__(self, contract, name, args):
        self.contract = contract
        self.name = name
        self.args = args

    async def call(self, tx=None):
        self.contract.calls.append((self.name, self.args))
        return self.contract.results[self.name]

    async def estimate_gas(self, tx):
        return 150_000

    async def build_transaction(self, tx):
        await asyncio.sleep(0)
        return dict(tx, to=self.contract.address, data="0x")


class StubFunctions:
    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, name):
        return lambda *args: StubCall(self._contract, name, args)


class StubContract:
    def __init__(self, address, abi):
        self.address = address
        self.abi = abi
        self.calls = []
        self.results = {}
        self.functions = StubFunctions(self)


class StubEth:
    """Pending nonce only advances once a transaction has been broadcast."""

    def __init__(self):
        self.contracts = []
        self.pending_nonce = 7
        self.nonce_reads = 0
        self.broadcast = []
        self.price = 30 * GWEI

    def contract(self, address, abi):
        contract = StubContract(address, abi)
        self.contracts.append(contract)
        return contract

    @property
    def gas_price(self):
        return _value(self.price)

    async def get_transaction_count(self, address, block_identifier):
        assert block_identifier == "pending"
        self.nonce_reads += 1
        nonce = self.pending_nonce
        await asyncio.sleep(0)
        return nonce

    async def send_raw_transaction(self, raw):
        await asyncio.sleep(0)
        self.broadcast.append(raw)
        self.pending_nonce = raw["nonce"] + 1
        return bytes([len(self.broadcast)]) * 32


class StubSocket:
    def __init__(self, messages, end_with=None):
        self.messages = messages
        self.end_with = end_with

    async def process_subscriptions(self):
        for message in self.messages:
            await asyncio.sleep(0)
            yield message
        if self.end_with is not None:
            raise self.end_with


class StubAccount:
    address = WALLET

    def sign_transaction(self, tx):
        return SimpleNamespace(raw_transaction=tx)


def _client(messages=(), end_with=None) -> ChainClient:
    w3 = SimpleNamespace(eth=StubEth(), socket=StubSocket(list(messages), end_with))
    client = ChainClient(w3, PRIVATE_KEY, ROUTER, STATE_VIEW, chain_id=1)
    client._account = StubAccount()
    return client


def _drain_subscriptions(client: ChainClient):
    """Collect (sub_id, log) pairs until the transport error surfaces."""
    async def scenario():
        received = []
        try:
            async for item in client.subscriptions():
                received.append(item)
        except TransportClosedError as e:
            return received, e
        raise AssertionError("subscriptions() ended without TransportClosedError")

    return asyncio.run(scenario())


MESSAGES = [
    {"subscription": "0xsub1", "result": {"logIndex": 0}},
    {"subscription": "0xsub2", "result": {"logIndex": 1}},
]


def test_messages_yielded_as_pairs() -> None:
    received, _ = _drain_subscriptions(_client(MESSAGES))
    assert received == [("0xsub1", {"logIndex": 0}), ("0xsub2", {"logIndex": 1})]
    print("  [PASS] messages_yielded_as_pairs")


def test_connection_closed_is_transport_loss() -> None:
    """websockets close frame code is carried on the error."""
    closed = ConnectionClosed(Close(1011, "internal error"), None)
    received, error = _drain_subscriptions(_client(MESSAGES[:1], end_with=closed))
    assert len(received) == 1
    assert error.code == 1011
    assert isinstance(error.__cause__, ConnectionClosed)
    print("  [PASS] connection_closed_is_transport_loss")


def test_connection_closed_without_frame() -> None:
    closed = ConnectionClosed(None, None)
    _, error = _drain_subscriptions(_client(end_with=closed))
    assert error.code is None
    print("  [PASS] connection_closed_without_frame")


def test_provider_error_is_transport_loss() -> None:
    _, error = _drain_subscriptions(_client(end_with=ProviderConnectionError("socket gone")))
    assert "socket gone" in str(error)
    assert isinstance(error.__cause__, ProviderConnectionError)
    print("  [PASS] provider_error_is_transport_loss")


def test_stream_end_is_transport_loss() -> None:
    received, error = _drain_subscriptions(_client(MESSAGES))
    assert len(received) == 2
    assert "ended" in str(error)
    print("  [PASS] stream_end_is_transport_loss")


def test_concurrent_sends_get_distinct_ordered_nonces() -> None:
    """Nonce read and broadcast happen under one lock per account."""
    client = _client()

    async def scenario():
        return await asyncio.gather(
            client.send_swap(KEY, INTENT, GAS),
            client.send_swap(KEY, INTENT, GAS),
            client.send_swap(KEY, INTENT, GAS),
        )

    hashes = asyncio.run(scenario())
    eth = client.w3.eth
    assert [tx["nonce"] for tx in eth.broadcast] == [7, 8, 9]
    assert eth.nonce_reads == 3
    assert len(set(hashes)) == 3
    assert hashes[0] == "0x" + "01" * 32
    tx = eth.broadcast[0]
    assert tx["from"] == WALLET and tx["to"] == ROUTER
    assert tx["value"] == INTENT.amount_in
    assert tx["gas"] == 240_000 and tx["gasPrice"] == 60 * GWEI
    assert tx["chainId"] == 1
    print("  [PASS] concurrent_sends_get_distinct_ordered_nonces")


def test_slot0_read_by_pool_id() -> None:
    client = _client()
    client.stateview.results["getSlot0"] = (2**96, -60, 0, 0)
    assert asyncio.run(client.get_slot0(KEY)) == (2**96, -60, 0, 0)
    assert client.stateview.calls == [("getSlot0", (compute_pool_id(KEY),))]
    print("  [PASS] slot0_read_by_pool_id")


def test_zero_gas_price_is_no_data() -> None:
    client = _client()
    client.w3.eth.price = 0
    assert asyncio.run(client.gas_price()) is None
    client.w3.eth.price = 12 * GWEI
    assert asyncio.run(client.gas_price()) == 12 * GWEI
    print("  [PASS] zero_gas_price_is_no_data")


def test_factory_handle_cached() -> None:
    """One contract handle per factory, regardless of address casing."""
    client = _client()
    first = client.factory(FACTORY.lower())
    assert client.factory(FACTORY) is first
    assert first.address == FACTORY
    assert all(entry["type"] == "function" for entry in FACTORY_ABI)
    first.results["hookAddress"] = "0x" + "cc" * 20
    assert asyncio.run(client.hook_address(FACTORY)) == "0x" + "cc" * 20
    print("  [PASS] factory_handle_cached")


if __name__ == "__main__":
    print("=== test_chain.py ===")
    test_messages_yielded_as_pairs()
    test_connection_closed_is_transport_loss()
    test_connection_closed_without_frame()
    test_provider_error_is_transport_loss()
    test_stream_end_is_transport_loss()
    test_concurrent_sends_get_distinct_ordered_nonces()
    test_slot0_read_by_pool_id()
    test_zero_gas_price_is_no_data()
    test_factory_handle_cached()
    print("\nAll chain tests passed.")
