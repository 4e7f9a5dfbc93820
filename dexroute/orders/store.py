"""Persistent limit-order store, scoped per owner."""

from __future__ import annotations

import json
import os
from decimal import Decimal
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from dexroute.errors import OrderNotFound, OrderStateError
from dexroute.models.order import LimitOrder, OrderStatus
from dexroute.models.types import normalize_address

logger = structlog.get_logger()

# On-disk layout: owner address -> that owner's orders
_STORED_ORDERS = TypeAdapter(dict[str, list[LimitOrder]])


class LimitOrderStore:
    """Orders keyed by owner, then by order id.

    Status changes are monotonic: an order leaves ACTIVE once and never
    changes again. When `path` is given, every mutation rewrites the JSON
    file so orders survive restarts.

    Args:
        path: JSON file to load from and persist to. None keeps orders in
              memory only.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._orders: dict[str, dict[str, LimitOrder]] = {}
        self._owner_of: dict[str, str] = {}
        if self.path is not None and self.path.exists():
            self._load(self.path)

    def __len__(self) -> int:
        return len(self._owner_of)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._owner_of

    # --- Queries ---

    def owners(self) -> list[str]:
        return [owner for owner, orders in self._orders.items() if orders]

    def get(self, order_id: str) -> LimitOrder:
        """Look up an order by id.

        Raises:
            OrderNotFound: If no order has this id
        """
        owner = self._owner_of.get(order_id)
        if owner is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return self._orders[owner][order_id]

    def get_orders_by_user(self, owner: str) -> list[LimitOrder]:
        """Every order of `owner` in creation order, whatever its status."""
        orders = self._orders.get(normalize_address(owner), {})
        return sorted(orders.values(), key=lambda o: o.created_at)

    def get_active_orders(self, owner: str | None = None) -> list[LimitOrder]:
        """Active orders of one owner, or of every owner when `owner` is None."""
        if owner is not None:
            return [o for o in self.get_orders_by_user(owner) if o.is_active]
        active = [o for orders in self._orders.values() for o in orders.values() if o.is_active]
        return sorted(active, key=lambda o: o.created_at)

    # --- Mutations ---

    def add_order(self, order: LimitOrder) -> LimitOrder:
        """Insert a new active order.

        Raises:
            ValueError: If the id is taken or the order is not active
        """
        if order.id in self._owner_of:
            raise ValueError(f"Duplicate order id: {order.id}")
        if not order.is_active:
            raise ValueError(f"New orders must be active, got {order.status.value}")

        owner = normalize_address(order.owner)
        order = order.model_copy(update={"owner": owner})
        self._orders.setdefault(owner, {})[order.id] = order
        self._owner_of[order.id] = owner
        self._save()
        logger.info("limit_order_added", order_id=order.id, owner=owner, pair=order.pair_label)
        return order

    def transition(
        self,
        order_id: str,
        status: OrderStatus,
        *,
        now: float,
        fill_price: Decimal | None = None,
    ) -> LimitOrder:
        """Move an active order to a terminal status.

        Raises:
            OrderNotFound: If no order has this id
            OrderStateError: If the order is already terminal, or `status`
                             is not terminal
        """
        order = self.get(order_id)
        if not status.is_terminal:
            raise OrderStateError(f"Cannot move order {order_id} to {status.value}")
        if order.status.is_terminal:
            raise OrderStateError(f"Order {order_id} is already {order.status.value}")

        updated = order.model_copy(
            update={
                "status": status,
                "closed_at": now,
                "fill_price": fill_price if status is OrderStatus.FILLED else None,
            }
        )
        self._orders[self._owner_of[order_id]][order_id] = updated
        self._save()
        logger.info("limit_order_transition", order_id=order_id, status=status.value)
        return updated

    def cancel_order(self, order_id: str, *, now: float) -> LimitOrder:
        """Cancel an active order.

        Raises:
            OrderNotFound: If no order has this id
            OrderStateError: If the order already left ACTIVE
        """
        return self.transition(order_id, OrderStatus.CANCELLED, now=now)

    def clear_expired_orders(self, now: float) -> list[LimitOrder]:
        """Expire every active order past its expiry time.

        Returns:
            The orders that were expired by this call
        """
        expired = [o for o in self.get_active_orders() if o.is_expired(now)]
        return [self.transition(o.id, OrderStatus.EXPIRED, now=now) for o in expired]

    # --- Persistence ---

    def _load(self, path: Path) -> None:
        """Load orders from `path`.

        A file that is not valid JSON or does not match the order schema is
        moved aside to `<name>.corrupt` and the store starts empty.
        """
        try:
            raw = _STORED_ORDERS.validate_json(path.read_bytes())
        except ValidationError as e:
            backup = path.with_suffix(path.suffix + ".corrupt")
            os.replace(path, backup)
            logger.error(
                "limit_orders_load_failed",
                path=str(path),
                moved_to=str(backup),
                error_count=e.error_count(),
                error=str(e.errors(include_url=False)[0]["msg"]),
            )
            return

        for owner, orders in raw.items():
            owner = normalize_address(owner)
            for order in orders:
                self._orders.setdefault(owner, {})[order.id] = order
                self._owner_of[order.id] = owner
        logger.info("limit_orders_loaded", path=str(path), count=len(self._owner_of))

    def _save(self) -> None:
        if self.path is None:
            return
        data = {
            owner: [order.model_dump(mode="json") for order in orders.values()]
            for owner, orders in self._orders.items()
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2))
        os.replace(tmp, self.path)


__all__ = ["LimitOrderStore"]
