"""Route discovery across direct and two-hop paths."""

from dexroute.routing.router import (
    RouteFinder,
    calculate_route_output,
    format_route_path,
    is_multihop_better,
)
from dexroute.routing.types import PriceQuote, QuoteOutcome, QuoteStatus, Route, RouteStep

__all__ = [
    "PriceQuote",
    "QuoteOutcome",
    "QuoteStatus",
    "Route",
    "RouteFinder",
    "RouteStep",
    "calculate_route_output",
    "format_route_path",
    "is_multihop_better",
]
