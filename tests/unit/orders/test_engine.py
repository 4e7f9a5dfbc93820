"""Tests for the limit-order engine and its watch cycle."""

from decimal import Decimal

import pytest

from dexroute.errors import OrderNotFound, OrderStateError
from dexroute.models.order import OrderStatus, TriggerDirection
from dexroute.orders.engine import LimitOrderEngine
from tests.helpers import ALICE, BOB, MON_TOKEN, ONE, WETH_TOKEN, StaticPriceFeed


@pytest.fixture
def engine(store, price_feed, clock, scheduler) -> LimitOrderEngine:
    return LimitOrderEngine(store, price_feed, clock=clock, scheduler=scheduler)


async def place(engine, clock, target="1.5", expires_in=3600.0, owner=ALICE):
    return await engine.add_order(owner, MON_TOKEN, WETH_TOKEN, ONE, Decimal(target), clock.time() + expires_in)


class TestAddOrder:
    @pytest.mark.asyncio
    async def test_entry_price_fixes_direction(self, engine, price_feed, clock):
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        order = await place(engine, clock, target="1.5")
        assert order.entry_price == Decimal("2")
        assert order.direction is TriggerDirection.BELOW
        assert order.is_active
        assert order.created_at == clock.time()

    @pytest.mark.asyncio
    async def test_target_above_entry(self, engine, price_feed, clock):
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        order = await place(engine, clock, target="3")
        assert order.direction is TriggerDirection.ABOVE

    @pytest.mark.asyncio
    async def test_without_price_waits_for_rise(self, engine, clock):
        order = await place(engine, clock, target="3")
        assert order.entry_price is None
        assert order.direction is TriggerDirection.ABOVE

    @pytest.mark.asyncio
    async def test_past_expiry_rejected(self, engine, clock):
        with pytest.raises(ValueError):
            await place(engine, clock, expires_in=0)

    @pytest.mark.asyncio
    async def test_unique_ids(self, engine, clock):
        first = await place(engine, clock)
        second = await place(engine, clock)
        assert first.id != second.id
        assert len(engine.get_active_orders(ALICE)) == 2


class TestWatchCycle:
    """Tests for fill and expiry detection."""

    @pytest.mark.asyncio
    async def test_fills_when_price_drops_to_target(self, engine, price_feed, clock):
        """Entry 2, target 1.5: 1.8 leaves it active, 1.5 fills it."""
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        order = await place(engine, clock, target="1.5")

        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "1.8")
        assert await engine.run_cycle() == []
        assert engine.store.get(order.id).is_active

        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "1.5")
        changed = await engine.run_cycle()
        assert [o.id for o in changed] == [order.id]
        filled = engine.store.get(order.id)
        assert filled.status is OrderStatus.FILLED
        assert filled.fill_price == Decimal("1.5")
        assert filled.closed_at == clock.time()

    @pytest.mark.asyncio
    async def test_fills_when_price_rises_to_target(self, engine, price_feed, clock):
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        order = await place(engine, clock, target="3")

        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2.9")
        assert await engine.run_cycle() == []
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "3.1")
        await engine.run_cycle()
        assert engine.store.get(order.id).fill_price == Decimal("3.1")

    @pytest.mark.asyncio
    async def test_expiry_wins_over_fill(self, engine, price_feed, clock):
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        order = await place(engine, clock, target="1.5", expires_in=10)

        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "1.0")
        clock.advance(11)
        await engine.run_cycle()

        expired = engine.store.get(order.id)
        assert expired.status is OrderStatus.EXPIRED
        assert expired.fill_price is None

    @pytest.mark.asyncio
    async def test_expiry_rechecked_after_price_fetch(self, store, clock):
        """An order that expires while its price is being fetched expires, not fills."""

        class SlowFeed(StaticPriceFeed):
            async def get_price(self, token_in, token_out):
                clock.advance(100)
                return await super().get_price(token_in, token_out)

        feed = SlowFeed()
        feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        engine = LimitOrderEngine(store, feed, clock=clock)
        order = await place(engine, clock, target="1.5", expires_in=150)

        feed.set_price(MON_TOKEN, WETH_TOKEN, "1.0")
        await engine.run_cycle()
        assert store.get(order.id).status is OrderStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_missing_price_skips_order(self, engine, price_feed, clock):
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        order = await place(engine, clock, target="1.5")

        price_feed.clear()
        assert await engine.run_cycle() == []
        assert engine.store.get(order.id).is_active

    @pytest.mark.asyncio
    async def test_cycle_scoped_to_owner(self, engine, price_feed, clock):
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        alice = await place(engine, clock, target="1.5", owner=ALICE)
        bob = await place(engine, clock, target="1.5", owner=BOB)

        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "1.0")
        changed = await engine.run_cycle(owner=BOB)

        assert [o.id for o in changed] == [bob.id]
        assert engine.store.get(alice.id).is_active

    @pytest.mark.asyncio
    async def test_cancel_during_price_fetch_is_skipped(self, store, clock):
        """A user cancel that lands mid-cycle is not overwritten by a fill."""

        class CancellingFeed(StaticPriceFeed):
            async def get_price(self, token_in, token_out):
                for order in store.get_active_orders():
                    store.cancel_order(order.id, now=clock.time())
                return await super().get_price(token_in, token_out)

        feed = CancellingFeed()
        engine = LimitOrderEngine(store, feed, clock=clock)
        order = await place(engine, clock, target="1.5")

        feed.set_price(MON_TOKEN, WETH_TOKEN, "9")
        assert await engine.run_cycle() == []
        assert store.get(order.id).status is OrderStatus.CANCELLED


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel(self, engine, clock):
        order = await place(engine, clock)
        cancelled = engine.cancel_order(order.id, owner=ALICE)
        assert cancelled.status is OrderStatus.CANCELLED
        assert engine.get_active_orders(ALICE) == []

    @pytest.mark.asyncio
    async def test_cancel_other_owner_not_found(self, engine, clock):
        order = await place(engine, clock)
        with pytest.raises(OrderNotFound):
            engine.cancel_order(order.id, owner=BOB)
        assert engine.store.get(order.id).is_active

    @pytest.mark.asyncio
    async def test_cancel_twice(self, engine, clock):
        order = await place(engine, clock)
        engine.cancel_order(order.id)
        with pytest.raises(OrderStateError):
            engine.cancel_order(order.id)


class TestListeners:
    @pytest.mark.asyncio
    async def test_notified_on_fill_and_cancel(self, engine, price_feed, clock):
        events = []
        engine.subscribe(events.append)
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        filled = await place(engine, clock, target="1.5")
        cancelled = await place(engine, clock, target="3")

        engine.cancel_order(cancelled.id)
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "1.5")
        await engine.run_cycle()

        assert [(o.id, o.status) for o in events] == [
            (cancelled.id, OrderStatus.CANCELLED),
            (filled.id, OrderStatus.FILLED),
        ]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, engine, clock):
        events = []
        unsubscribe = engine.subscribe(events.append)
        unsubscribe()
        unsubscribe()
        order = await place(engine, clock)
        engine.cancel_order(order.id)
        assert events == []

    @pytest.mark.asyncio
    async def test_failing_listener_isolated(self, engine, clock):
        """One broken listener neither blocks the others nor the transition."""
        events = []

        def broken(order):
            raise RuntimeError("listener bug")

        engine.subscribe(broken)
        engine.subscribe(events.append)
        order = await place(engine, clock)

        engine.cancel_order(order.id)
        assert [o.id for o in events] == [order.id]
        assert engine.store.get(order.id).status is OrderStatus.CANCELLED


class TestScheduling:
    @pytest.mark.asyncio
    async def test_start_runs_cycle_periodically(self, engine, price_feed, clock, scheduler):
        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "2")
        order = await place(engine, clock, target="1.5")

        engine.start(interval=30)
        assert engine.running
        assert await scheduler.advance(0) == 1
        assert engine.store.get(order.id).is_active

        price_feed.set_price(MON_TOKEN, WETH_TOKEN, "1.4")
        assert await scheduler.advance(30) == 1
        assert engine.store.get(order.id).status is OrderStatus.FILLED

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, engine, scheduler):
        handle = engine.start()
        assert engine.start() is handle
        assert scheduler.pending == 1

    @pytest.mark.asyncio
    async def test_stop(self, engine, scheduler):
        engine.start(interval=30)
        engine.stop()
        assert not engine.running
        assert await scheduler.advance(120) == 0

    def test_start_requires_scheduler(self, store, price_feed, clock):
        engine = LimitOrderEngine(store, price_feed, clock=clock)
        with pytest.raises(RuntimeError):
            engine.start()
