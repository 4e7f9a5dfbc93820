"""Limit-order lifecycle: creation, cancellation and the periodic watch cycle.

Each cycle walks the active orders. Expiry is checked first and wins over
a fill on the same cycle. Otherwise the current price is fetched and the
order fills when it has crossed the target in the order's direction. A
fill is advisory: the engine records it and notifies subscribers, it never
executes a swap.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from decimal import Decimal

import structlog

from dexroute.chain.result import Err
from dexroute.clock import Clock, Scheduler, SystemClock, TaskHandle
from dexroute.config import ORDER_WATCH_INTERVAL
from dexroute.errors import OrderNotFound, OrderStateError
from dexroute.models.order import LimitOrder, OrderStatus, TriggerDirection
from dexroute.models.token import Token
from dexroute.models.types import normalize_address
from dexroute.orders.price_feed import PriceFeed
from dexroute.orders.store import LimitOrderStore

logger = structlog.get_logger()

OrderListener = Callable[[LimitOrder], None]


class LimitOrderEngine:
    """Drives limit orders from ACTIVE to a terminal status.

    Args:
        store: Order store (single writer: this engine and user actions)
        price_feed: Source of current prices
        clock: Time source. Defaults to SystemClock().
        scheduler: Runs the watch cycle. Required for start().
    """

    def __init__(
        self,
        store: LimitOrderStore,
        price_feed: PriceFeed,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.store = store
        self.price_feed = price_feed
        self.clock = clock or SystemClock()
        self.scheduler = scheduler
        self._listeners: list[OrderListener] = []
        self._handle: TaskHandle | None = None

    # --- User actions ---

    async def add_order(
        self,
        owner: str,
        token_in: Token,
        token_out: Token,
        amount_in: int,
        target_price: Decimal,
        expires_at: float,
    ) -> LimitOrder:
        """Create an active order.

        The current price is captured as the entry price and fixes the
        trigger direction. Without a price the order waits for a rise.

        Raises:
            ValueError: If expires_at is not in the future
            pydantic.ValidationError: If a field is invalid
        """
        now = self.clock.time()
        if expires_at <= now:
            raise ValueError(f"Expiry {expires_at} must be after now ({now})")

        entry_price = None
        quote = await self.price_feed.get_price(token_in, token_out)
        if isinstance(quote, Err):
            logger.warning("limit_order_entry_price_unavailable", kind=quote.kind.value, error=quote.message)
        else:
            entry_price = quote.value.price

        order = LimitOrder(
            id=uuid.uuid4().hex,
            owner=normalize_address(owner),
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            target_price=target_price,
            entry_price=entry_price,
            direction=TriggerDirection.from_prices(Decimal(target_price), entry_price),
            created_at=now,
            expires_at=expires_at,
        )
        return self.store.add_order(order)

    def cancel_order(self, order_id: str, owner: str | None = None) -> LimitOrder:
        """Cancel an active order.

        Args:
            order_id: Order to cancel
            owner: If given, the order must belong to this owner

        Raises:
            OrderNotFound: If the order does not exist (or is not owner's)
            OrderStateError: If the order already left ACTIVE
        """
        order = self.store.get(order_id)
        if owner is not None and order.owner != normalize_address(owner):
            raise OrderNotFound(f"Order {order_id} not found")
        cancelled = self.store.cancel_order(order_id, now=self.clock.time())
        self._notify(cancelled)
        return cancelled

    def get_active_orders(self, owner: str | None = None) -> list[LimitOrder]:
        return self.store.get_active_orders(owner)

    def subscribe(self, listener: OrderListener) -> Callable[[], None]:
        """Register a transition listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Watch cycle ---

    async def run_cycle(self, owner: str | None = None) -> list[LimitOrder]:
        """Evaluate every active order once.

        Args:
            owner: Restrict the cycle to one owner's orders

        Returns:
            Orders that changed status during this cycle
        """
        changed: list[LimitOrder] = []
        for order in self.store.get_active_orders(owner):
            if order.is_expired(self.clock.time()):
                self._apply(order, OrderStatus.EXPIRED, changed)
                continue

            quote = await self.price_feed.get_price(order.token_in, order.token_out)
            if isinstance(quote, Err):
                logger.debug("limit_order_price_unavailable", order_id=order.id, kind=quote.kind.value)
                continue

            # Time passed while fetching; expiry still wins
            if order.is_expired(self.clock.time()):
                self._apply(order, OrderStatus.EXPIRED, changed)
                continue

            price = quote.value.price
            if order.direction.is_met(price, order.target_price):
                self._apply(order, OrderStatus.FILLED, changed, fill_price=price)

        if changed:
            logger.info("limit_order_cycle_complete", changed=len(changed), owner=owner)
        return changed

    def start(self, owner: str | None = None, interval: float = ORDER_WATCH_INTERVAL) -> TaskHandle:
        """Run the watch cycle every `interval` seconds until stop()."""
        if self.scheduler is None:
            raise RuntimeError("LimitOrderEngine.start() needs a scheduler")
        if self._handle is not None and not self._handle.cancelled:
            return self._handle

        async def tick() -> None:
            await self.run_cycle(owner)

        self._handle = self.scheduler.every(interval, tick)
        logger.info("limit_order_watch_started", owner=owner, interval=interval)
        return self._handle

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.info("limit_order_watch_stopped")

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    # --- Internals ---

    def _apply(
        self,
        order: LimitOrder,
        status: OrderStatus,
        changed: list[LimitOrder],
        fill_price: Decimal | None = None,
    ) -> None:
        try:
            updated = self.store.transition(order.id, status, now=self.clock.time(), fill_price=fill_price)
        except OrderStateError:
            # Cancelled by the user while this cycle was waiting on a price
            logger.debug("limit_order_transition_skipped", order_id=order.id, status=status.value)
            return
        changed.append(updated)
        self._notify(updated)

    def _notify(self, order: LimitOrder) -> None:
        for listener in list(self._listeners):
            try:
                listener(order)
            except Exception:
                logger.exception("limit_order_listener_failed", order_id=order.id)


__all__ = ["LimitOrderEngine", "OrderListener"]
