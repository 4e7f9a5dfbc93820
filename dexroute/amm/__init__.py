"""Constant-product AMM math."""

from dexroute.amm.library import (
    calculate_liquidity_minted,
    calculate_min_amount,
    calculate_pool_share,
    calculate_price_impact,
    calculate_remove_liquidity,
    get_amount_in,
    get_amount_out,
    get_amounts_in,
    get_amounts_out,
    isqrt,
    pair_for,
    quote,
    sort_tokens,
)
from dexroute.amm.pair import Pair

__all__ = [
    "Pair",
    "calculate_liquidity_minted",
    "calculate_min_amount",
    "calculate_pool_share",
    "calculate_price_impact",
    "calculate_remove_liquidity",
    "get_amount_in",
    "get_amount_out",
    "get_amounts_in",
    "get_amounts_out",
    "isqrt",
    "pair_for",
    "quote",
    "sort_tokens",
]
