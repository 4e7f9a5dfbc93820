"""Snapshot of a UniswapV2 pair's on-chain state."""

from __future__ import annotations

from dataclasses import dataclass

from dexroute.amm.library import get_amount_out, sort_tokens
from dexroute.models.types import normalize_address


@dataclass(frozen=True)
class Pair:
    """A liquidity pool as read from the node.

    Reserves are a point-in-time snapshot; they change with every trade, so
    a Pair is never cached longer than the chain client's TTL.
    """

    address: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    total_supply: int | None = None

    def __post_init__(self) -> None:
        if self.reserve0 < 0 or self.reserve1 < 0:
            raise ValueError(f"Negative reserves for pair {self.address}")
        object.__setattr__(self, "address", normalize_address(self.address))
        object.__setattr__(self, "token0", normalize_address(self.token0))
        object.__setattr__(self, "token1", normalize_address(self.token1))

    @classmethod
    def from_unsorted(
        cls,
        address: str,
        token_a: str,
        token_b: str,
        reserve_a: int,
        reserve_b: int,
    ) -> Pair:
        """Build a pair from tokens in any order, sorting like the factory does."""
        token0, _ = sort_tokens(token_a, token_b)
        if token0 == normalize_address(token_a):
            return cls(address, token_a, token_b, reserve_a, reserve_b)
        return cls(address, token_b, token_a, reserve_b, reserve_a)

    @property
    def has_liquidity(self) -> bool:
        """A pool with either reserve at zero is treated as non-existent."""
        return self.reserve0 > 0 and self.reserve1 > 0

    def get_reserves(self, token_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        token_in_norm = normalize_address(token_in)
        if token_in_norm == self.token0:
            return self.reserve0, self.reserve1
        elif token_in_norm == self.token1:
            return self.reserve1, self.reserve0
        else:
            raise ValueError(f"Token {token_in} not in pair {self.address}")

    def get_token_out(self, token_in: str) -> str:
        """Get the output token for a given input token."""
        token_in_norm = normalize_address(token_in)
        if token_in_norm == self.token0:
            return self.token1
        elif token_in_norm == self.token1:
            return self.token0
        else:
            raise ValueError(f"Token {token_in} not in pair {self.address}")

    def simulate_swap(self, token_in: str, amount_in: int) -> int:
        """Output amount for selling `amount_in` of `token_in` into this pair."""
        reserve_in, reserve_out = self.get_reserves(token_in)
        return get_amount_out(amount_in, reserve_in, reserve_out)


__all__ = ["Pair"]
