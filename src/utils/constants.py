"""
BNB Smart Chain addresses and event signatures.
"""

from eth_utils import keccak

# DeFi routers and factories
BSC_CONTRACTS = {
    "PANCAKESWAP_V2_ROUTER": "0x10ED43C718714eb63d5aA57B78B54704E256024E",
    "PANCAKESWAP_V3_ROUTER": "0x13f4EA83D0bd40E75C8222255bc855a974568Dd4",
    "PANCAKESWAP_V2_FACTORY": "0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73",
    "ONEINCH_ROUTER": "0x1111111254EEB25477B68fb85Ed929f73A960582",
    "BISWAP_ROUTER": "0x3a6d8cA21D1CF76F653A67577FA0D27453350dD8",
}

BSC_TOKENS = {
    "USDT": "0x55d398326f99059fF775485246999027B3197955",
    "BUSD": "0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56",
    "WBNB": "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
    "USDC": "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
    "BTCB": "0x7130d2A12B9BCbFAe4f2634d864A1Ee1Ce3Ead9c",
    "ETH": "0x2170Ed0880ac9A755fd29B2688956BD959F933F8",
}

TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"
V2_SWAP_EVENT_SIGNATURE = "Swap(address,uint256,uint256,uint256,uint256,address)"
V3_SWAP_EVENT_SIGNATURE = "Swap(address,address,int256,int256,uint160,uint128,int24)"


def event_topic(signature: str) -> str:
    """Topic-0 for a canonical event signature"""
    return "0x" + keccak(text=signature).hex()


ERC20_TRANSFER_TOPIC = event_topic(TRANSFER_EVENT_SIGNATURE)
PANCAKE_V2_SWAP_TOPIC = event_topic(V2_SWAP_EVENT_SIGNATURE)
PANCAKE_V3_SWAP_TOPIC = event_topic(V3_SWAP_EVENT_SIGNATURE)

# Error(string)
REVERT_REASON_SELECTOR = "0x08c379a0"

EMPTY_CALLDATA = "0x"
