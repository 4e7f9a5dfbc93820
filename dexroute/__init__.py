"""DEX core: AMM math, resilient chain reads, route discovery and limit orders."""

from dexroute.chain.client import ChainClient
from dexroute.orders.engine import LimitOrderEngine
from dexroute.routing.router import RouteFinder

__version__ = "0.1.0"
__all__ = ["ChainClient", "LimitOrderEngine", "RouteFinder", "__version__"]
