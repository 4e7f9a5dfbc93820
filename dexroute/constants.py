"""Network constants for the exchange deployment.

Centralizes well-known addresses, the static token list and routing
parameters.
"""

from dexroute.models.token import Token, TokenList
from dexroute.models.types import ZERO_ADDRESS, is_valid_address

CHAIN_ID = 3945
CHAIN_NAME = "Nexus Testnet"
DEFAULT_RPC_URL = "https://testnet.rpc.nexus.xyz"


def _validate_contract_address(name: str, address: str) -> str:
    """Validate and return a lowercase contract address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address.lower()


# Core contracts (lowercase for consistency)
# All addresses are validated at import time to catch typos early
FACTORY = _validate_contract_address("FACTORY", "0x4CBe36D90F2Fb8a3167D7D9db8fF0a9C22095BD0")
MULTICALL = _validate_contract_address("MULTICALL", "0xC1185D97cAf50ef37a53bc876960d1B8A6458e9A")

# Wrapped native token; every native-asset trade is routed through it
WRAPPED_NATIVE = _validate_contract_address("WETH", "0xfC5b9b777C4Ac4EfbF5003D10919cC323e5d92ee")

WNEX = _validate_contract_address("WNEX", "0x34088CafC2810e1507477c14C215a44b732f5283")
MON = _validate_contract_address("MON", "0xfaccE5b48B0d9c2D215CDb8F918c0412Fa160768")
FRDX = _validate_contract_address("FRDX", "0xE81670F867d27ED423d6D5Eb6908435dbA62F6DF")

NATIVE_SENTINEL = ZERO_ADDRESS

# UniswapV2 pair creation code hash, used to derive pair addresses offline
PAIR_INIT_CODE_HASH = "0x96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f"

TOKENS: list[Token] = [
    Token(address=NATIVE_SENTINEL, symbol="NEX", name="Nexus", decimals=18, logo_uri="/tokens/nex.jpg"),
    Token(address=WNEX, symbol="WNEX", name="Wrapped NEX", decimals=18, logo_uri="/tokens/nex.jpg"),
    Token(address=WRAPPED_NATIVE, symbol="WETH", name="Wrapped ETH", decimals=18, logo_uri="/tokens/weth.png"),
    Token(address=MON, symbol="MON", name="MON Token", decimals=18, logo_uri="/tokens/mon.png"),
    Token(address=FRDX, symbol="FRDX", name="FOREDEX Token", decimals=18, logo_uri="/tokens/frdx.png"),
]

TOKEN_LIST = TokenList(TOKENS, wrapped_native=WRAPPED_NATIVE)

# Liquid hubs tried as the middle token of two-hop routes.
# Kept small: every hub costs two pair lookups per quote.
ROUTING_INTERMEDIATES = ("WETH", "USDC", "NEX", "FRDX")

# Gas estimates reported with routes
DIRECT_SWAP_GAS = 150_000
MULTIHOP_SWAP_GAS = 250_000

# Locked on first deposit so pool shares can never be fully redeemed
MINIMUM_LIQUIDITY = 1000

# UniswapV2 fee: 0.3% taken from the input amount
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000
