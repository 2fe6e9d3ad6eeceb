"""
Async chain client over a web3.py WebSocket connection.

Wraps AsyncWeb3 for everything the sniper needs from the node: log
subscriptions, factory and StateView reads, fee data, balances, gas
estimation, swap simulation, signed submission and receipt waits.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from eth_account import Account
from web3 import AsyncWeb3, Web3, WebSocketProvider
from web3.exceptions import ProviderConnectionError
from websockets.exceptions import ConnectionClosed

from .abis import FACTORY_ABI, ROUTER_ABI, STATEVIEW_ABI
from .errors import TransportClosedError
from .models import GasPolicy, PoolKey, SwapIntent
from .pool_key import compute_pool_id


class ChainClient:
    """
    Shared, read-mostly handle to the node and the signing account.

    Submissions are serialized per account: nonce assignment and
    eth_sendRawTransaction happen under one lock, receipt waits do not.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        private_key: str,
        router_address: str,
        state_view_address: str,
        chain_id: int,
    ) -> None:
        self.w3 = w3
        self._account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.router = w3.eth.contract(
            address=Web3.to_checksum_address(router_address), abi=ROUTER_ABI
        )
        self.stateview = w3.eth.contract(
            address=Web3.to_checksum_address(state_view_address), abi=STATEVIEW_ABI
        )
        self._factories: dict[str, Any] = {}
        self._send_lock = asyncio.Lock()

    @classmethod
    async def connect(
        cls,
        rpc_wss: str,
        private_key: str,
        router_address: str,
        state_view_address: str,
    ) -> "ChainClient":
        """Open the WebSocket connection and read the chain id."""
        w3 = await AsyncWeb3(WebSocketProvider(rpc_wss))
        chain_id = await w3.eth.chain_id
        return cls(w3, private_key, router_address, state_view_address, chain_id)

    async def disconnect(self) -> None:
        await self.w3.provider.disconnect()

    @property
    def address(self) -> str:
        return self._account.address

    def factory(self, address: str):
        """Factory contract handle (hookAddress / listOfRouters), cached per address."""
        address = Web3.to_checksum_address(address)
        if address not in self._factories:
            self._factories[address] = self.w3.eth.contract(address=address, abi=FACTORY_ABI)
        return self._factories[address]

    # ─── Subscriptions ───

    async def subscribe_logs(self, address: str, topics: list[str | None]) -> str:
        """eth_subscribe("logs") filtered by emitter and topics; returns the subscription id."""
        return await self.w3.eth.subscribe(
            "logs", {"address": Web3.to_checksum_address(address), "topics": topics}
        )

    async def unsubscribe(self, subscription_id: str) -> bool:
        return await self.w3.eth.unsubscribe(subscription_id)

    async def subscriptions(self) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        """
        Yield (subscription_id, log) for every subscription message.

        Any closure of the socket, including the stream simply ending, raises
        TransportClosedError: there is no in-process reconnect.
        """
        try:
            async for message in self.w3.socket.process_subscriptions():
                yield message["subscription"], message["result"]
        except ConnectionClosed as exc:
            code = exc.rcvd.code if exc.rcvd is not None else None
            raise TransportClosedError(f"WebSocket closed: {exc}", code=code) from exc
        except ProviderConnectionError as exc:
            raise TransportClosedError(f"WebSocket provider lost: {exc}") from exc
        raise TransportClosedError("Subscription stream ended")

    # ─── Reads ───

    async def hook_address(self, factory_address: str) -> str:
        return await self.factory(factory_address).functions.hookAddress().call()

    async def is_router_whitelisted(self, factory_address: str, router_address: str) -> bool:
        return await self.factory(factory_address).functions.listOfRouters(
            Web3.to_checksum_address(router_address)
        ).call()

    async def get_slot0(self, key: PoolKey) -> tuple[int, int, int, int]:
        """(sqrtPriceX96, tick, protocolFee, lpFee) for the pool behind key."""
        result = await self.stateview.functions.getSlot0(compute_pool_id(key)).call()
        return (result[0], result[1], result[2], result[3])

    async def gas_price(self) -> int | None:
        """Current node gas price in wei, or None when the node has no data."""
        price = await self.w3.eth.gas_price
        return int(price) if price else None

    async def get_balance(self, address: str | None = None) -> int:
        return int(await self.w3.eth.get_balance(address or self.address))

    # ─── Swap ───

    def _swap_call(self, key: PoolKey, intent: SwapIntent):
        return self.router.functions.swapExactTokensForTokens(
            intent.amount_in,
            intent.min_amount_out,
            intent.zero_for_one,
            key.as_tuple(),
            intent.hook_data,
            Web3.to_checksum_address(intent.receiver),
            intent.deadline,
        )

    async def simulate_swap(self, key: PoolKey, intent: SwapIntent) -> tuple[int, int]:
        """eth_call the swap; returns the predicted BalanceDelta (amount0, amount1)."""
        result = await self._swap_call(key, intent).call(
            {"from": self.address, "value": intent.amount_in}
        )
        amount0, amount1 = result
        return int(amount0), int(amount1)

    async def estimate_swap_gas(self, key: PoolKey, intent: SwapIntent) -> int:
        return int(
            await self._swap_call(key, intent).estimate_gas(
                {"from": self.address, "value": intent.amount_in}
            )
        )

    async def send_swap(self, key: PoolKey, intent: SwapIntent, gas: GasPolicy) -> str:
        """Sign and broadcast the swap; returns the 0x-prefixed transaction hash."""
        async with self._send_lock:
            nonce = await self.w3.eth.get_transaction_count(self.address, "pending")
            tx = await self._swap_call(key, intent).build_transaction(
                {
                    "from": self.address,
                    "value": intent.amount_in,
                    "gas": gas.gas_limit,
                    "gasPrice": gas.gas_price,
                    "nonce": nonce,
                    "chainId": self.chain_id,
                }
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> dict[str, Any] | None:
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        return dict(receipt) if receipt is not None else None
