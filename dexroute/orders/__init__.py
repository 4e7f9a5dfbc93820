"""Limit-order lifecycle."""

from dexroute.orders.engine import LimitOrderEngine
from dexroute.orders.price_feed import PoolPriceFeed, PriceFeed
from dexroute.orders.store import LimitOrderStore

__all__ = ["LimitOrderEngine", "LimitOrderStore", "PoolPriceFeed", "PriceFeed"]
