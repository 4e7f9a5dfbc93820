"""Route discovery: direct and two-hop candidates ranked by output."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from decimal import Decimal

import structlog

from dexroute.amm.library import calculate_price_impact, get_amount_out
from dexroute.amm.pair import Pair
from dexroute.chain.reader import PoolReader
from dexroute.chain.result import Err, Result
from dexroute.constants import DIRECT_SWAP_GAS, MULTIHOP_SWAP_GAS, ROUTING_INTERMEDIATES, TOKEN_LIST
from dexroute.errors import AmmError, IdenticalAddresses, InsufficientInputAmount
from dexroute.models.token import Token, TokenList
from dexroute.routing.types import QuoteOutcome, QuoteStatus, Route, RouteStep

logger = structlog.get_logger()

NO_LIQUIDITY_MESSAGE = "No liquidity for this pair."
UNAVAILABLE_MESSAGE = "Network is busy. Retrying shortly."


def calculate_route_output(amount_in: int, steps: Sequence[RouteStep]) -> tuple[int, Decimal]:
    """Chain the swap through every step.

    Each hop's output feeds the next hop's input. The route's impact is the
    sum of the per-hop impacts.

    Returns:
        (amount_out, price_impact_percent); (0, 0) if any step has an
        empty reserve or an intermediate amount rounds down to zero.
    """
    current = amount_in
    total_impact = Decimal(0)
    for step in steps:
        if not step.has_liquidity or current <= 0:
            return 0, Decimal(0)
        amount_out = get_amount_out(current, step.reserve_in, step.reserve_out)
        total_impact += calculate_price_impact(current, amount_out, step.reserve_in, step.reserve_out)
        current = amount_out
    return current, total_impact


def format_route_path(route: Route) -> str:
    """Display form, e.g. 'MON → WETH → FRDX'."""
    return " → ".join(token.symbol for token in route.path)


def is_multihop_better(routes: Iterable[Route]) -> bool:
    """True if the best multi-hop route beats the direct route."""
    direct = None
    multihop = None
    for route in routes:
        if route.is_multihop:
            multihop = multihop or route
        else:
            direct = direct or route
    if direct is None or multihop is None:
        return False
    return multihop.amount_out > direct.amount_out


class RouteFinder:
    """Finds and ranks execution routes for a trade.

    Direct routes are evaluated before two-hop routes through a small set of
    liquid hub tokens, with every leg read in one batched lookup. A leg whose
    lookup fails or whose pair is empty drops its candidate without affecting
    the others.

    Args:
        reader: Pool reader backed by the shared chain client
        tokens: Token list used to resolve addresses and hubs
        intermediates: Hub symbols tried as the middle token
    """

    def __init__(
        self,
        reader: PoolReader,
        tokens: TokenList = TOKEN_LIST,
        intermediates: Sequence[str] = ROUTING_INTERMEDIATES,
    ) -> None:
        self.reader = reader
        self.tokens = tokens
        self.intermediates = tuple(intermediates)

    def _resolve(self, token: Token | str) -> Token:
        return token if isinstance(token, Token) else self.tokens.resolve(token)

    def get_intermediate_tokens(self, token_in: Token, token_out: Token) -> list[Token]:
        """Hub tokens usable between token_in and token_out.

        Excludes both endpoints (after wrapping) and the native sentinel.
        """
        excluded = {self.tokens.wrapped(token_in.address), self.tokens.wrapped(token_out.address)}
        hubs = []
        for symbol in self.intermediates:
            token = self.tokens.by_symbol(symbol)
            if token is None or token.is_native or token.key in excluded:
                continue
            hubs.append(token)
        return hubs

    async def find_best_route(self, token_in: Token | str, token_out: Token | str, amount_in: int) -> list[Route]:
        """Ranked routes for selling amount_in of token_in for token_out.

        Returns:
            Routes sorted by amount_out descending; empty if none is viable.

        Raises:
            InsufficientInputAmount: If amount_in <= 0
            IdenticalAddresses: If both tokens wrap to the same address
        """
        routes, _ = await self._discover(self._resolve(token_in), self._resolve(token_out), amount_in)
        return routes

    async def get_best_route(self, token_in: Token | str, token_out: Token | str, amount_in: int) -> Route | None:
        routes = await self.find_best_route(token_in, token_out, amount_in)
        return routes[0] if routes else None

    async def quote(self, token_in: Token | str, token_out: Token | str, amount_in: int) -> QuoteOutcome:
        """Discovery plus the direct-only fallback, with the reason for an empty result.

        A "no liquidity" outcome means every lookup answered and nothing was
        tradeable. "unavailable" means at least one lookup failed transiently,
        so a retry may find routes.
        """
        tin, tout = self._resolve(token_in), self._resolve(token_out)
        routes, unavailable = await self._discover(tin, tout, amount_in)
        if routes:
            return QuoteOutcome(QuoteStatus.OK, routes)

        logger.info("route_fallback_direct", token_in=tin.symbol, token_out=tout.symbol)
        failures: list[Err] = []
        direct = await self._direct_route(tin, tout, amount_in, failures, skip_cache=True)
        if direct is not None:
            return QuoteOutcome(QuoteStatus.OK, [direct])

        if unavailable or failures:
            logger.warning("route_unavailable", token_in=tin.symbol, token_out=tout.symbol)
            return QuoteOutcome(QuoteStatus.UNAVAILABLE, message=UNAVAILABLE_MESSAGE)
        return QuoteOutcome(QuoteStatus.NO_LIQUIDITY, message=NO_LIQUIDITY_MESSAGE)

    # --- Internals ---

    async def _discover(self, token_in: Token, token_out: Token, amount_in: int) -> tuple[list[Route], bool]:
        """Returns (routes, whether any lookup failed transiently)."""
        if amount_in <= 0:
            raise InsufficientInputAmount(f"Amount in must be positive, got {amount_in}")
        in_address = self.tokens.wrapped(token_in.address)
        out_address = self.tokens.wrapped(token_out.address)
        if in_address == out_address:
            raise IdenticalAddresses(f"{token_in.symbol} and {token_out.symbol} trade through the same token")

        logger.debug("route_discovery_started", token_in=token_in.symbol, token_out=token_out.symbol, amount_in=amount_in)

        failures: list[Err] = []
        hubs = self.get_intermediate_tokens(token_in, token_out)
        legs = [(in_address, out_address)]
        for hub in hubs:
            hub_address = self.tokens.wrapped(hub.address)
            legs.extend([(in_address, hub_address), (hub_address, out_address)])
        pairs = await self._legs(legs, failures)

        routes: list[Route] = []
        direct = self._route((token_in, token_out), pairs[:1], amount_in, DIRECT_SWAP_GAS)
        if direct is not None:
            routes.append(direct)
        for index, hub in enumerate(hubs):
            legs_via_hub = pairs[1 + 2 * index : 3 + 2 * index]
            route = self._route((token_in, hub, token_out), legs_via_hub, amount_in, MULTIHOP_SWAP_GAS)
            if route is not None:
                routes.append(route)

        # Stable: equal outputs keep discovery order, so direct wins ties
        routes.sort(key=lambda r: r.amount_out, reverse=True)

        logger.debug("routes_found", token_in=token_in.symbol, token_out=token_out.symbol, count=len(routes))
        return routes, any(err.is_transient for err in failures)

    async def _leg(self, token_a: str, token_b: str, failures: list[Err], skip_cache: bool = False) -> Pair | None:
        result: Result[Pair | None] = await self.reader.get_pair_reserves(token_a, token_b, skip_cache=skip_cache)
        if isinstance(result, Err):
            failures.append(result)
            logger.debug("route_leg_failed", token_a=token_a, token_b=token_b, kind=result.kind.value)
            return None
        pair = result.value
        if pair is None or not pair.has_liquidity:
            return None
        return pair

    async def _legs(self, legs: Sequence[tuple[str, str]], failures: list[Err]) -> list[Pair | None]:
        """Tradeable pool per leg, None where there is none.

        Reads every leg in one batch. If the batch fails, each leg is read
        on its own so one reverting pool only costs its own candidates.
        """
        batch = await self.reader.get_pairs_reserves(legs)
        if isinstance(batch, Err):
            logger.debug("route_batch_read_failed", legs=len(legs), kind=batch.kind.value)
            return list(await asyncio.gather(*(self._leg(token_a, token_b, failures) for token_a, token_b in legs)))
        return [pair if pair is not None and pair.has_liquidity else None for pair in batch.value]

    def _step(self, pair: Pair, token_in: Token, token_out: Token) -> RouteStep:
        reserve_in, reserve_out = pair.get_reserves(self.tokens.wrapped(token_in.address))
        return RouteStep(token_in, token_out, pair.address, reserve_in, reserve_out)

    def _route(
        self, path: tuple[Token, ...], pairs: Sequence[Pair | None], amount_in: int, gas: int
    ) -> Route | None:
        hops = []
        for pair, hop_in, hop_out in zip(pairs, path, path[1:]):
            if pair is None:
                return None
            hops.append(self._step(pair, hop_in, hop_out))
        steps = tuple(hops)
        try:
            amount_out, impact = calculate_route_output(amount_in, steps)
        except AmmError as e:
            logger.debug("route_candidate_dropped", path=[t.symbol for t in path], error=str(e))
            return None
        if amount_out <= 0:
            return None
        return Route(
            path=path,
            path_addresses=tuple(self.tokens.wrapped(t.address) for t in path),
            steps=steps,
            amount_in=amount_in,
            amount_out=amount_out,
            price_impact=impact,
            gas_estimate=gas,
        )

    async def _direct_route(
        self,
        token_in: Token,
        token_out: Token,
        amount_in: int,
        failures: list[Err],
        skip_cache: bool = False,
    ) -> Route | None:
        in_address = self.tokens.wrapped(token_in.address)
        out_address = self.tokens.wrapped(token_out.address)
        pair = await self._leg(in_address, out_address, failures, skip_cache)
        return self._route((token_in, token_out), [pair], amount_in, DIRECT_SWAP_GAS)


__all__ = [
    "RouteFinder",
    "calculate_route_output",
    "format_route_path",
    "is_multihop_better",
    "NO_LIQUIDITY_MESSAGE",
    "UNAVAILABLE_MESSAGE",
]
