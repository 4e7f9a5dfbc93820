"""Market prices for limit-order evaluation."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from dexroute.chain.reader import PoolReader
from dexroute.chain.result import Err, ErrorKind, Ok, Result
from dexroute.constants import TOKEN_LIST
from dexroute.models.token import Token, TokenList
from dexroute.routing.types import PriceQuote


class PriceFeed(Protocol):
    """Protocol for current-price sources."""

    async def get_price(self, token_in: Token, token_out: Token) -> Result[PriceQuote]:
        """Whole token_out per whole token_in, or Err if no price is available."""
        ...


class PoolPriceFeed:
    """Spot prices from the direct pair's reserves.

    The price is decimals-adjusted: reserves are scaled to whole tokens
    before dividing. A missing or empty pair yields Err(REVERTED), which is
    not transient; node failures pass through as their own Err.
    """

    def __init__(self, reader: PoolReader, tokens: TokenList = TOKEN_LIST) -> None:
        self.reader = reader
        self.tokens = tokens

    async def get_price(self, token_in: Token, token_out: Token) -> Result[PriceQuote]:
        in_address = self.tokens.wrapped(token_in.address)
        out_address = self.tokens.wrapped(token_out.address)

        result = await self.reader.get_pair_reserves(in_address, out_address)
        if isinstance(result, Err):
            return result

        pair = result.value
        if pair is None or not pair.has_liquidity:
            return Err(ErrorKind.REVERTED, f"No liquid pair for {token_in.symbol}/{token_out.symbol}")

        reserve_in, reserve_out = pair.get_reserves(in_address)
        price = (Decimal(reserve_out) / Decimal(10) ** token_out.decimals) / (
            Decimal(reserve_in) / Decimal(10) ** token_in.decimals
        )
        return Ok(PriceQuote(in_address, out_address, price, pair.address, stale=result.stale), stale=result.stale)


__all__ = ["PriceFeed", "PoolPriceFeed"]
