"""
Log decoding for factory launch events and ERC20 transfers.

Indexed address arguments live in topics[1..]; everything else is ABI
encoded in the data field.
"""

from dataclasses import dataclass
from typing import Any

from eth_abi.abi import decode
from web3 import Web3

from .abis import (
    LAUNCH_EVENT_SIGNATURE,
    RANGE_LAUNCH_EVENT_SIGNATURE,
    TRANSFER_EVENT_SIGNATURE,
)
from .models import LaunchEvent


def event_topic(signature: str) -> str:
    """topic0 for an event signature, 0x-prefixed."""
    return Web3.to_hex(Web3.keccak(text=signature))


LAUNCH_TOPIC = event_topic(LAUNCH_EVENT_SIGNATURE)
RANGE_LAUNCH_TOPIC = event_topic(RANGE_LAUNCH_EVENT_SIGNATURE)
TRANSFER_TOPIC = event_topic(TRANSFER_EVENT_SIGNATURE)


@dataclass(frozen=True)
class LaunchSource:
    """One factory deployment and the launch event it emits."""
    name: str
    factory_address: str
    ranged: bool = False

    @property
    def topic(self) -> str:
        return RANGE_LAUNCH_TOPIC if self.ranged else LAUNCH_TOPIC

    @property
    def event_name(self) -> str:
        return "NFTStrategyRangeLaunched" if self.ranged else "NFTStrategyLaunched"


@dataclass(frozen=True)
class TransferLog:
    token: str
    sender: str
    recipient: str
    value: int


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    return bytes(value)


def _hex_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return "0x" + _as_bytes(value).hex()


def decode_topic_address(topic: Any) -> str:
    """Indexed address: the low 20 bytes of a 32-byte topic."""
    raw = _as_bytes(topic)
    if len(raw) != 32:
        raise ValueError(f"Topic must be 32 bytes, got {len(raw)}")
    return Web3.to_checksum_address("0x" + raw[-20:].hex())


def decode_launch_log(log: dict[str, Any], source: LaunchSource) -> LaunchEvent:
    """
    Decode a NFTStrategyLaunched / NFTStrategyRangeLaunched log.

    Args:
        log: Log entry as delivered by eth_subscribe / eth_getLogs
        source: Factory the subscription belongs to

    Returns:
        LaunchEvent (id_range set for ranged launches)

    Raises:
        ValueError: topic0 does not match the source's event or data is malformed
    """
    topics = log["topics"]
    if len(topics) < 3:
        raise ValueError(f"{source.event_name} log needs 3 topics, got {len(topics)}")
    if _as_bytes(topics[0]) != _as_bytes(source.topic):
        raise ValueError(f"Unexpected topic0 {_hex_or_none(topics[0])} for {source.event_name}")

    collection = decode_topic_address(topics[1])
    token = decode_topic_address(topics[2])
    data = _as_bytes(log["data"])

    id_range = None
    if source.ranged:
        low_id, high_id, name, symbol = decode(["uint256", "uint256", "string", "string"], data)
        id_range = (low_id, high_id)
    else:
        name, symbol = decode(["string", "string"], data)

    return LaunchEvent(
        collection=collection,
        token=token,
        name=name,
        symbol=symbol,
        source=source.name,
        id_range=id_range,
        tx_hash=_hex_or_none(log.get("transactionHash")),
        block_number=log.get("blockNumber"),
        log_index=log.get("logIndex"),
    )


def decode_transfer_log(log: dict[str, Any]) -> TransferLog:
    topics = log["topics"]
    (value,) = decode(["uint256"], _as_bytes(log["data"]))
    return TransferLog(
        token=Web3.to_checksum_address(log["address"]),
        sender=decode_topic_address(topics[1]),
        recipient=decode_topic_address(topics[2]),
        value=value,
    )
