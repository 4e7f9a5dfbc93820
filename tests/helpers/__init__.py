"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token addresses, accounts and common amounts
- fakes: In-memory chain, transports, scripted operations and price feeds
- factories: Order and client factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    FRDX,
    FRDX_TOKEN,
    MON,
    MON_TOKEN,
    NEX,
    NEX_TOKEN,
    ONE,
    WETH,
    WETH_TOKEN,
    WNEX,
    WNEX_TOKEN,
)
from tests.helpers.factories import PRIMARY, SECONDARY, UNTHROTTLED, make_client, make_order
from tests.helpers.fakes import FakeChain, FakeTransport, ScriptedOperation, StaticPriceFeed, TransportRegistry

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "FRDX",
    "FRDX_TOKEN",
    "MON",
    "MON_TOKEN",
    "NEX",
    "NEX_TOKEN",
    "ONE",
    "WETH",
    "WETH_TOKEN",
    "WNEX",
    "WNEX_TOKEN",
    # Fakes
    "FakeChain",
    "FakeTransport",
    "ScriptedOperation",
    "StaticPriceFeed",
    "TransportRegistry",
    # Factories
    "PRIMARY",
    "SECONDARY",
    "UNTHROTTLED",
    "make_client",
    "make_order",
]
