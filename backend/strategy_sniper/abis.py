"""
Contract ABIs for strategy launch sniping.

Contains minimal ABIs for the strategy factories, the Uniswap V4 StateView,
and the swap router. The ranged factory exposes the same hookAddress /
listOfRouters surface as the standard one.
"""

# PoolKey tuple (router swap argument)
POOL_KEY_COMPONENTS = [
    {"name": "currency0", "type": "address"},
    {"name": "currency1", "type": "address"},
    {"name": "fee", "type": "uint24"},
    {"name": "tickSpacing", "type": "int24"},
    {"name": "hooks", "type": "address"},
]


# Strategy factory ABI (standard and ranged deployments)
FACTORY_ABI = [
    {
        "name": "hookAddress",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "listOfRouters",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]


# StateView ABI (pool existence check)
STATEVIEW_ABI = [
    {
        "name": "getSlot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "protocolFee", "type": "uint24"},
            {"name": "lpFee", "type": "uint24"},
        ],
    }
]


# Swap router ABI (single-pool exact input, payable for native ETH)
ROUTER_ABI = [
    {
        "name": "swapExactTokensForTokens",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOutMin", "type": "uint256"},
            {"name": "zeroForOne", "type": "bool"},
            {"name": "poolKey", "type": "tuple", "components": POOL_KEY_COMPONENTS},
            {"name": "hookData", "type": "bytes"},
            {"name": "receiver", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "outputs": [
            {
                "name": "delta",
                "type": "tuple",
                "components": [
                    {"name": "amount0", "type": "int128"},
                    {"name": "amount1", "type": "int128"},
                ],
            }
        ],
    }
]


# ─── Event signatures (topic0 = keccak256 of these) ───

LAUNCH_EVENT_SIGNATURE = "NFTStrategyLaunched(address,address,string,string)"
RANGE_LAUNCH_EVENT_SIGNATURE = (
    "NFTStrategyRangeLaunched(address,address,uint256,uint256,string,string)"
)
TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"
