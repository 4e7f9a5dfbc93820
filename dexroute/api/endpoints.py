"""API endpoints for routing, AMM math, slippage and limit orders."""

from dataclasses import dataclass

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from dexroute.amm.library import calculate_price_impact, get_amount_in, get_amount_out, quote
from dexroute.api.schemas import (
    AmountInRequest,
    AmountOutRequest,
    AmountResponse,
    CreateOrderRequest,
    QuoteOutcomeResponse,
    QuoteRequest,
    RouteRequest,
    SlippageRequest,
    SlippageResponse,
)
from dexroute.chain.client import ChainClient
from dexroute.models.order import LimitOrder
from dexroute.models.token import TokenList
from dexroute.orders.engine import LimitOrderEngine
from dexroute.routing.router import RouteFinder
from dexroute.slippage import calculate_auto_slippage

logger = structlog.get_logger()

router = APIRouter()


@dataclass
class Services:
    """Service instances shared by all requests of one application."""

    client: ChainClient
    route_finder: RouteFinder
    order_engine: LimitOrderEngine
    tokens: TokenList


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_chain_client(services: Services = Depends(get_services)) -> ChainClient:
    """Dependency provider for the chain client.

    Override in tests:
        app.dependency_overrides[get_chain_client] = lambda: fake_client
    """
    return services.client


def get_route_finder(services: Services = Depends(get_services)) -> RouteFinder:
    return services.route_finder


def get_order_engine(services: Services = Depends(get_services)) -> LimitOrderEngine:
    return services.order_engine


def get_token_list(services: Services = Depends(get_services)) -> TokenList:
    return services.tokens


# --- Routing ---


@router.post("/routes", response_model_exclude_none=True)
async def find_routes(
    request: RouteRequest,
    finder: RouteFinder = Depends(get_route_finder),
) -> QuoteOutcomeResponse:
    """Ranked routes for a trade.

    Error Handling:
        - Invalid request schema: 422
        - Non-positive amount or identical tokens: 400
        - Node unreachable: 200 with status "unavailable"
    """
    outcome = await finder.quote(request.token_in, request.token_out, request.amount_in)
    logger.info(
        "routes_quoted",
        token_in=request.token_in,
        token_out=request.token_out,
        status=outcome.status.value,
        route_count=len(outcome.routes),
    )
    return QuoteOutcomeResponse.from_outcome(outcome)


# --- AMM math ---


@router.post("/amounts/out")
async def amount_out(request: AmountOutRequest) -> AmountResponse:
    amount = get_amount_out(request.amount_in, request.reserve_in, request.reserve_out)
    impact = calculate_price_impact(request.amount_in, amount, request.reserve_in, request.reserve_out)
    return AmountResponse(amount=amount, price_impact=impact)


@router.post("/amounts/in")
async def amount_in(request: AmountInRequest) -> AmountResponse:
    amount = get_amount_in(request.amount_out, request.reserve_in, request.reserve_out)
    impact = calculate_price_impact(amount, request.amount_out, request.reserve_in, request.reserve_out)
    return AmountResponse(amount=amount, price_impact=impact)


@router.post("/quote", response_model_exclude_none=True)
async def proportional_quote(request: QuoteRequest) -> AmountResponse:
    return AmountResponse(amount=quote(request.amount_a, request.reserve_a, request.reserve_b))


# --- Slippage ---


@router.post("/slippage")
async def auto_slippage(request: SlippageRequest) -> SlippageResponse:
    recommendation = calculate_auto_slippage(
        request.amount_in,
        request.reserve_in,
        request.reserve_out,
        user_slippage=request.user_slippage,
    )
    return SlippageResponse.from_recommendation(recommendation)


# --- Limit orders ---


@router.post("/orders", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    engine: LimitOrderEngine = Depends(get_order_engine),
    tokens: TokenList = Depends(get_token_list),
) -> LimitOrder:
    """Create an active limit order.

    Error Handling:
        - Invalid request schema: 422
        - Expiry not in the future: 400
    """
    expires_at = request.expires_at
    if expires_at is None:
        expires_at = engine.clock.time() + request.expires_in
    try:
        return await engine.add_order(
            owner=request.owner,
            token_in=tokens.resolve(request.token_in),
            token_out=tokens.resolve(request.token_out),
            amount_in=request.amount_in,
            target_price=request.target_price,
            expires_at=expires_at,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/orders/{order_id}")
async def cancel_order(
    order_id: str,
    owner: str | None = Query(default=None),
    engine: LimitOrderEngine = Depends(get_order_engine),
) -> LimitOrder:
    return engine.cancel_order(order_id, owner=owner)


@router.get("/orders/{owner}")
async def list_orders(
    owner: str,
    include_all: bool = Query(default=False, alias="all", description="Include filled, cancelled and expired orders"),
    engine: LimitOrderEngine = Depends(get_order_engine),
) -> list[LimitOrder]:
    if include_all:
        return engine.store.get_orders_by_user(owner)
    return engine.get_active_orders(owner)


__all__ = [
    "router",
    "Services",
    "get_services",
    "get_chain_client",
    "get_route_finder",
    "get_order_engine",
    "get_token_list",
]
