"""Shared token constants for tests.

All addresses are lowercase for consistency with normalize_address().

Usage:
    from tests.helpers import WETH, MON
    # or
    from tests.helpers.constants import WETH, MON
"""

from dexroute.constants import FRDX, MON, NATIVE_SENTINEL, TOKEN_LIST, WNEX, WRAPPED_NATIVE

# =============================================================================
# Deployment tokens
# =============================================================================

WETH = WRAPPED_NATIVE  # Wrapped native token (18 decimals)
NEX = NATIVE_SENTINEL  # Native asset sentinel

NEX_TOKEN = TOKEN_LIST.by_address(NEX)
WNEX_TOKEN = TOKEN_LIST.by_address(WNEX)
WETH_TOKEN = TOKEN_LIST.by_address(WETH)
MON_TOKEN = TOKEN_LIST.by_address(MON)
FRDX_TOKEN = TOKEN_LIST.by_address(FRDX)

# =============================================================================
# Accounts
# =============================================================================

ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"

# =============================================================================
# Mainnet UniswapV2 reference values (CREATE2 test vector)
# =============================================================================

UNISWAP_FACTORY = "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f"
MAINNET_WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
MAINNET_USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
MAINNET_USDC_WETH_PAIR = "0xb4e16d0168e52d35cacd2c6185b44281ec28c9dc"

# Common amounts
ONE = 10**18
