"""Pytest configuration and fixtures."""

import pytest

from dexroute.chain.client import ChainClient
from dexroute.chain.reader import PoolReader
from dexroute.clock import ManualClock, ManualScheduler
from dexroute.orders.store import LimitOrderStore
from tests.helpers import FakeChain, StaticPriceFeed, TransportRegistry, make_client


@pytest.fixture
def clock() -> ManualClock:
    """Virtual clock starting at a fixed Unix time."""
    return ManualClock()


@pytest.fixture
def scheduler(clock: ManualClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def chain() -> FakeChain:
    """Empty in-memory factory; tests add the pairs they need."""
    return FakeChain()


@pytest.fixture
def registry(chain: FakeChain) -> TransportRegistry:
    return TransportRegistry(chain)


@pytest.fixture
def client(chain: FakeChain, clock: ManualClock, registry: TransportRegistry) -> ChainClient:
    """Unthrottled ChainClient over the fake chain."""
    client, _ = make_client(chain, clock=clock, registry=registry)
    return client


@pytest.fixture
def reader(client: ChainClient) -> PoolReader:
    return PoolReader(client)


@pytest.fixture
def store() -> LimitOrderStore:
    """In-memory order store (no persistence)."""
    return LimitOrderStore()


@pytest.fixture
def price_feed() -> StaticPriceFeed:
    return StaticPriceFeed()
