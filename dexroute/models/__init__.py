"""Data models for tokens and limit orders."""

from dexroute.models.order import LimitOrder, OrderStatus, TriggerDirection
from dexroute.models.token import Token, TokenList
from dexroute.models.types import Address, BaseUnits, is_valid_address, normalize_address

__all__ = [
    "Address",
    "BaseUnits",
    "LimitOrder",
    "OrderStatus",
    "Token",
    "TokenList",
    "TriggerDirection",
    "is_valid_address",
    "normalize_address",
]
