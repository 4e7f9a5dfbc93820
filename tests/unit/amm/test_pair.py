"""Tests for the Pair snapshot."""

import pytest

from dexroute.amm.library import get_amount_out
from dexroute.amm.pair import Pair
from dexroute.errors import IdenticalAddresses
from tests.helpers import MON, WETH

PAIR_ADDRESS = "0x" + "ab" * 20


def make_pair(reserve_mon: int = 1_000_000, reserve_weth: int = 2_000_000) -> Pair:
    return Pair.from_unsorted(PAIR_ADDRESS, MON, WETH, reserve_mon, reserve_weth)


class TestPairConstruction:
    """Tests for building pairs from unsorted tokens."""

    def test_sorts_tokens_and_reserves(self):
        """token0 is the lower address and keeps its own reserve."""
        pair = make_pair(111, 222)
        assert pair.token0 < pair.token1
        assert pair.get_reserves(MON) == (111, 222)
        assert pair.get_reserves(WETH) == (222, 111)

    def test_same_pair_either_order(self):
        """Argument order does not matter."""
        assert Pair.from_unsorted(PAIR_ADDRESS, WETH, MON, 222, 111) == make_pair(111, 222)

    def test_normalizes_addresses(self):
        pair = Pair(PAIR_ADDRESS.upper().replace("0X", "0x"), MON.upper(), WETH.upper(), 1, 1)
        assert pair.address == PAIR_ADDRESS
        assert pair.token0 == MON.lower()

    def test_negative_reserves_rejected(self):
        with pytest.raises(ValueError):
            Pair(PAIR_ADDRESS, MON, WETH, -1, 1)

    def test_identical_tokens_rejected(self):
        with pytest.raises(IdenticalAddresses):
            Pair.from_unsorted(PAIR_ADDRESS, MON, MON, 1, 1)


class TestPairLiquidity:
    def test_has_liquidity(self):
        assert make_pair().has_liquidity

    def test_zero_reserve_is_no_liquidity(self):
        """A pool with one empty side is treated as non-existent."""
        assert not make_pair(0, 2_000_000).has_liquidity
        assert not make_pair(1_000_000, 0).has_liquidity


class TestPairSwap:
    def test_token_out(self):
        pair = make_pair()
        assert pair.get_token_out(MON) == WETH
        assert pair.get_token_out(WETH) == MON

    def test_unknown_token_raises(self):
        pair = make_pair()
        with pytest.raises(ValueError):
            pair.get_reserves("0x" + "99" * 20)
        with pytest.raises(ValueError):
            pair.get_token_out("0x" + "99" * 20)

    def test_simulate_swap_uses_directional_reserves(self):
        pair = make_pair()
        assert pair.simulate_swap(MON, 1000) == get_amount_out(1000, 1_000_000, 2_000_000)
        assert pair.simulate_swap(WETH, 1000) == get_amount_out(1000, 2_000_000, 1_000_000)
