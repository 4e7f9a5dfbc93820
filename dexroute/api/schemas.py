"""Request and response models for the HTTP API.

Amounts cross the wire as decimal strings; addresses as 0x-prefixed hex.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from dexroute.models.types import Address, BaseUnits
from dexroute.routing.router import format_route_path, is_multihop_better
from dexroute.routing.types import QuoteOutcome, QuoteStatus, Route
from dexroute.slippage import Severity, SlippageRecommendation

# --- Routing ---


class RouteRequest(BaseModel):
    token_in: Address
    token_out: Address
    amount_in: BaseUnits


class RouteStepResponse(BaseModel):
    token_in: Address
    token_out: Address
    pair_address: Address
    reserve_in: BaseUnits
    reserve_out: BaseUnits


class RouteResponse(BaseModel):
    path: list[str] = Field(description="Token symbols in trade order")
    path_addresses: list[Address]
    display: str
    steps: list[RouteStepResponse]
    amount_in: BaseUnits
    amount_out: BaseUnits
    price_impact: Decimal
    gas_estimate: int
    is_multihop: bool

    @classmethod
    def from_route(cls, route: Route) -> RouteResponse:
        return cls(
            path=[t.symbol for t in route.path],
            path_addresses=list(route.path_addresses),
            display=format_route_path(route),
            steps=[
                RouteStepResponse(
                    token_in=s.token_in.address,
                    token_out=s.token_out.address,
                    pair_address=s.pair_address,
                    reserve_in=s.reserve_in,
                    reserve_out=s.reserve_out,
                )
                for s in route.steps
            ],
            amount_in=route.amount_in,
            amount_out=route.amount_out,
            price_impact=route.price_impact,
            gas_estimate=route.gas_estimate,
            is_multihop=route.is_multihop,
        )


class QuoteOutcomeResponse(BaseModel):
    status: QuoteStatus
    message: str | None = None
    routes: list[RouteResponse] = Field(default_factory=list)
    multihop_better: bool = False

    @classmethod
    def from_outcome(cls, outcome: QuoteOutcome) -> QuoteOutcomeResponse:
        return cls(
            status=outcome.status,
            message=outcome.message,
            routes=[RouteResponse.from_route(r) for r in outcome.routes],
            multihop_better=is_multihop_better(outcome.routes),
        )


# --- AMM math ---


class AmountOutRequest(BaseModel):
    amount_in: BaseUnits
    reserve_in: BaseUnits
    reserve_out: BaseUnits


class AmountInRequest(BaseModel):
    amount_out: BaseUnits
    reserve_in: BaseUnits
    reserve_out: BaseUnits


class QuoteRequest(BaseModel):
    amount_a: BaseUnits
    reserve_a: BaseUnits
    reserve_b: BaseUnits


class AmountResponse(BaseModel):
    amount: BaseUnits
    price_impact: Decimal | None = None


# --- Slippage ---


class SlippageRequest(BaseModel):
    amount_in: BaseUnits
    reserve_in: BaseUnits
    reserve_out: BaseUnits
    user_slippage: Decimal | None = Field(default=None, ge=0, le=100)


class SlippageResponse(BaseModel):
    recommended_slippage: Decimal
    severity: Severity
    reason: str
    user_overridden: bool

    @classmethod
    def from_recommendation(cls, rec: SlippageRecommendation) -> SlippageResponse:
        return cls(
            recommended_slippage=rec.recommended_slippage,
            severity=rec.severity,
            reason=rec.reason,
            user_overridden=rec.user_overridden,
        )


# --- Limit orders ---

DEFAULT_ORDER_LIFETIME = 24 * 3600.0


class CreateOrderRequest(BaseModel):
    owner: Address
    token_in: Address
    token_out: Address
    amount_in: BaseUnits = Field(gt=0)
    target_price: Decimal = Field(gt=0)
    expires_at: float | None = Field(default=None, description="Unix time; overrides expires_in")
    expires_in: float = Field(default=DEFAULT_ORDER_LIFETIME, gt=0, description="Seconds from now")


__all__ = [
    "RouteRequest",
    "RouteStepResponse",
    "RouteResponse",
    "QuoteOutcomeResponse",
    "AmountOutRequest",
    "AmountInRequest",
    "QuoteRequest",
    "AmountResponse",
    "SlippageRequest",
    "SlippageResponse",
    "CreateOrderRequest",
    "DEFAULT_ORDER_LIFETIME",
]
