"""
Factory deployment calldata decoding.

The strategy factory constructor takes six addresses; they are the last
6 * 32 bytes of the deployment input.
"""

from dataclasses import asdict, dataclass

from eth_abi.abi import decode
from web3 import Web3

CONSTRUCTOR_ARG_COUNT = 6
WORD_HEX_CHARS = 64


@dataclass(frozen=True)
class FactoryDeployment:
    posm: str
    permit2: str
    pool_manager: str
    universal_router: str
    router: str
    fee_address: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def decode_factory_deploy_data(deploy_data: str) -> FactoryDeployment:
    """
    Decode the factory constructor addresses from deployment calldata.

    :param deploy_data: Full deployment input, 0x-prefixed hex
    :raises ValueError: not hex, or too short to hold the constructor args
    """
    deploy_data = deploy_data.strip()
    if not deploy_data.startswith("0x"):
        raise ValueError("Deploy data must be 0x-prefixed hex")

    body = deploy_data[2:]
    tail_len = WORD_HEX_CHARS * CONSTRUCTOR_ARG_COUNT
    if len(body) < tail_len:
        raise ValueError(
            f"Deploy data too short: {len(body) // 2} bytes, need at least {tail_len // 2}"
        )

    args = bytes.fromhex(body[-tail_len:])
    decoded = decode(["address"] * CONSTRUCTOR_ARG_COUNT, args)
    return FactoryDeployment(*(Web3.to_checksum_address(a) for a in decoded))
