"""Type definitions for routing module."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from dexroute.models.token import Token


@dataclass(frozen=True)
class RouteStep:
    """One hop of a route: a swap through a single pair."""

    token_in: Token
    token_out: Token
    pair_address: str
    reserve_in: int
    reserve_out: int

    @property
    def has_liquidity(self) -> bool:
        return self.reserve_in > 0 and self.reserve_out > 0


@dataclass(frozen=True)
class Route:
    """A candidate execution route, recomputed on every quote.

    `path` holds the tokens as requested (the native sentinel stays native);
    `path_addresses` holds the addresses actually traded through pools.
    """

    path: tuple[Token, ...]
    path_addresses: tuple[str, ...]
    steps: tuple[RouteStep, ...]
    amount_in: int
    amount_out: int
    price_impact: Decimal
    gas_estimate: int

    def __post_init__(self) -> None:
        if not 2 <= len(self.path) <= 3:
            raise ValueError(f"Route path must have 2 or 3 tokens, got {len(self.path)}")
        if len(self.path_addresses) != len(self.path) or len(self.steps) != len(self.path) - 1:
            raise ValueError("Route path, addresses and steps do not line up")
        if self.amount_out <= 0:
            raise ValueError(f"Route output must be positive, got {self.amount_out}")
        if any(not step.has_liquidity for step in self.steps):
            raise ValueError("Route passes through a pair with an empty reserve")
        if self.price_impact < 0:
            raise ValueError(f"Price impact cannot be negative: {self.price_impact}")

    @property
    def hops(self) -> int:
        return len(self.steps)

    @property
    def is_multihop(self) -> bool:
        return len(self.path) > 2

    @property
    def pair_addresses(self) -> tuple[str, ...]:
        return tuple(step.pair_address for step in self.steps)


class QuoteStatus(str, Enum):
    OK = "ok"
    NO_LIQUIDITY = "no_liquidity"
    # Node unreachable; a retry may succeed
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class QuoteOutcome:
    """Routes for a request plus why the list may be empty."""

    status: QuoteStatus
    routes: list[Route] = field(default_factory=list)
    message: str | None = None

    @property
    def best(self) -> Route | None:
        return self.routes[0] if self.routes else None


@dataclass(frozen=True)
class PriceQuote:
    """Spot price from one pair's reserves: whole token_out per whole token_in."""

    token_in: str
    token_out: str
    price: Decimal
    pair_address: str
    stale: bool = False

    def __post_init__(self) -> None:
        if self.price <= 0:
            raise ValueError(f"Price must be positive, got {self.price}")


__all__ = ["RouteStep", "Route", "QuoteStatus", "QuoteOutcome", "PriceQuote"]
