"""Limit order model and lifecycle states."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from dexroute.models.token import Token
from dexroute.models.types import Address, BaseUnits


class OrderStatus(str, Enum):
    """Lifecycle state of a limit order.

    active -> filled | cancelled | expired. The three right-hand states are
    terminal.
    """

    ACTIVE = "active"
    FILLED = "filled"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.ACTIVE


class TriggerDirection(str, Enum):
    """Which side of the target price fills the order."""

    # Fill when the market price falls to or below the target
    BELOW = "below"
    # Fill when the market price rises to or above the target
    ABOVE = "above"

    @classmethod
    def from_prices(cls, target_price: Decimal, entry_price: Decimal | None) -> TriggerDirection:
        """Target under the entry price waits for a drop; anything else for a rise."""
        if entry_price is not None and target_price < entry_price:
            return cls.BELOW
        return cls.ABOVE

    def is_met(self, current_price: Decimal, target_price: Decimal) -> bool:
        if self is TriggerDirection.BELOW:
            return current_price <= target_price
        return current_price >= target_price


class LimitOrder(BaseModel):
    """A user's target-price order, tracked locally.

    Prices are quoted as units of token_out per unit of token_in.
    Times are Unix timestamps in seconds.
    """

    id: str
    owner: Address
    token_in: Token
    token_out: Token
    amount_in: BaseUnits
    target_price: Decimal = Field(gt=0)
    entry_price: Decimal | None = None
    direction: TriggerDirection = TriggerDirection.ABOVE
    created_at: float
    expires_at: float
    status: OrderStatus = OrderStatus.ACTIVE
    closed_at: float | None = None
    fill_price: Decimal | None = None

    @property
    def is_active(self) -> bool:
        return self.status is OrderStatus.ACTIVE

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    @property
    def pair_label(self) -> str:
        return f"{self.token_in.symbol}->{self.token_out.symbol}"


__all__ = ["LimitOrder", "OrderStatus", "TriggerDirection"]
