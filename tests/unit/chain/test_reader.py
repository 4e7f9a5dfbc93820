"""Tests for PoolReader over an in-memory chain."""

import pytest
from eth_abi import decode  # type: ignore[attr-defined]

from dexroute.amm.library import pair_for
from dexroute.chain.reader import (
    AGGREGATE_SELECTOR,
    GET_PAIR_SELECTOR,
    GET_RESERVES_SELECTOR,
    TOTAL_SUPPLY_SELECTOR,
    PoolReader,
)
from dexroute.chain.result import Err, ErrorKind, Ok
from dexroute.constants import FACTORY, MULTICALL, PAIR_INIT_CODE_HASH
from dexroute.errors import RateLimited
from tests.helpers import ALICE, FRDX, MON, WETH, TransportRegistry, make_client


class TestPairLookup:
    """Tests for factory getPair reads."""

    @pytest.mark.asyncio
    async def test_existing_pair(self, chain, reader):
        address = chain.add_pair(MON, WETH, 1000, 2000)
        result = await reader.get_pair(MON, WETH)
        assert result == Ok(address)
        assert address == pair_for(FACTORY, MON, WETH, PAIR_INIT_CODE_HASH)

    @pytest.mark.asyncio
    async def test_missing_pair_is_none(self, reader):
        assert await reader.get_pair(MON, FRDX) == Ok(None)

    @pytest.mark.asyncio
    async def test_pair_cached_under_sorted_key(self, chain, reader, registry):
        """Both argument orders share one cache entry."""
        chain.add_pair(MON, WETH, 1000, 2000)
        await reader.get_pair(MON, WETH)
        await reader.get_pair(WETH, MON)
        assert [data[:4] for _, data in registry.calls] == [GET_PAIR_SELECTOR]

    @pytest.mark.asyncio
    async def test_token_order(self, chain, reader):
        address = chain.add_pair(MON, WETH, 1000, 2000)
        token0 = await reader.get_token0(address)
        token1 = await reader.get_token1(address)
        assert isinstance(token0, Ok) and isinstance(token1, Ok)
        assert token0.value < token1.value
        assert {token0.value, token1.value} == {MON, WETH}


class TestReserves:
    """Tests for reserve reads."""

    @pytest.mark.asyncio
    async def test_reserves_ordered_by_input(self, chain, reader):
        address = chain.add_pair(MON, WETH, 1000, 2000)
        assert await reader.get_reserves(address, MON) == Ok((1000, 2000))
        assert await reader.get_reserves(address, WETH) == Ok((2000, 1000))

    @pytest.mark.asyncio
    async def test_raw_reserves_in_pair_order(self, chain, reader):
        address = chain.add_pair(MON, WETH, 1000, 2000)
        result = await reader.get_raw_reserves(address)
        expected = (1000, 2000) if MON < WETH else (2000, 1000)
        assert result == Ok(expected)

    @pytest.mark.asyncio
    async def test_reserves_cached_until_skip(self, chain, reader):
        """Cached reserves are served until a caller asks for fresh ones."""
        address = chain.add_pair(MON, WETH, 1000, 2000)
        await reader.get_reserves(address, MON)
        chain.set_reserves(MON, WETH, 5000, 6000)
        assert await reader.get_reserves(address, MON) == Ok((1000, 2000))
        assert await reader.get_reserves(address, MON, skip_cache=True) == Ok((5000, 6000))

    @pytest.mark.asyncio
    async def test_stale_reserves_flagged(self, chain, clock):
        """A stale reserves read marks the ordered result stale."""
        address = chain.add_pair(MON, WETH, 1000, 2000)
        registry = TransportRegistry(chain)
        client, _ = make_client(chain, clock=clock, registry=registry)
        reader = PoolReader(client)
        await reader.get_reserves(address, MON)

        clock.advance(20)
        registry.built[0].fail_with = RateLimited("429")
        result = await reader.get_reserves(address, MON)
        assert result == Ok((1000, 2000), stale=True)

    @pytest.mark.asyncio
    async def test_reserves_error_propagates(self, chain):
        address = chain.add_pair(MON, WETH, 1000, 2000)
        registry = TransportRegistry(chain, {"https://rpc-a.test": {"fail_with": RateLimited("429")}})
        client, _ = make_client(chain, registry=registry)
        result = await PoolReader(client).get_reserves(address, MON)
        assert isinstance(result, Err)
        assert result.kind is ErrorKind.RATE_LIMITED


class TestPairReserves:
    @pytest.mark.asyncio
    async def test_builds_pair(self, chain, reader):
        address = chain.add_pair(MON, WETH, 1000, 2000)
        result = await reader.get_pair_reserves(WETH, MON)
        assert isinstance(result, Ok)
        pair = result.value
        assert pair.address == address
        assert pair.get_reserves(WETH) == (2000, 1000)
        assert pair.has_liquidity

    @pytest.mark.asyncio
    async def test_missing_pair(self, reader):
        assert await reader.get_pair_reserves(MON, FRDX) == Ok(None)

    @pytest.mark.asyncio
    async def test_reverted_reserves(self, chain):
        address = chain.add_pair(MON, WETH, 1000, 2000)
        registry = TransportRegistry(chain, {"https://rpc-a.test": {"fail_for": {address}}})
        client, _ = make_client(chain, registry=registry)
        result = await PoolReader(client).get_pair_reserves(MON, WETH)
        assert isinstance(result, Err)
        assert result.kind is ErrorKind.REVERTED

    @pytest.mark.asyncio
    async def test_skip_cache_reaches_reserves(self, chain, reader, registry):
        chain.add_pair(MON, WETH, 1000, 2000)
        await reader.get_pair_reserves(MON, WETH)
        await reader.get_pair_reserves(MON, WETH, skip_cache=True)
        reserve_reads = [data for _, data in registry.calls if data[:4] == GET_RESERVES_SELECTOR]
        assert len(reserve_reads) == 2


class TestSupplyAndBalance:
    @pytest.mark.asyncio
    async def test_total_supply(self, chain, reader):
        address = chain.add_pair(MON, WETH, 1000, 2000, total_supply=1414)
        assert await reader.get_total_supply(address) == Ok(1414)

    @pytest.mark.asyncio
    async def test_balance(self, chain, reader):
        chain.set_balance(MON, ALICE, 5 * 10**18)
        assert await reader.get_balance(MON, ALICE) == Ok(5 * 10**18)

    @pytest.mark.asyncio
    async def test_zero_balance(self, reader):
        assert await reader.get_balance(WETH, ALICE) == Ok(0)


class TestBatchedReads:
    """Tests for multicall-batched pool reads."""

    @pytest.mark.asyncio
    async def test_multicall_returns_each_result(self, chain, reader, registry):
        first = chain.add_pair(MON, WETH, 1000, 2000, total_supply=7)
        second = chain.add_pair(WETH, FRDX, 1000, 2000, total_supply=9)

        result = await reader.multicall([(first, TOTAL_SUPPLY_SELECTOR), (second, TOTAL_SUPPLY_SELECTOR)])

        assert isinstance(result, Ok)
        assert [int.from_bytes(data, "big") for data in result.value] == [7, 9]
        assert [to for to, _ in registry.calls] == [MULTICALL]

    @pytest.mark.asyncio
    async def test_empty_batch_skips_network(self, reader, registry):
        assert await reader.multicall([]) == Ok([])
        assert await reader.get_pairs_reserves([]) == Ok([])
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_one_request_per_stage(self, chain, reader, registry):
        """Pair lookups go out together, then token0 and reserves together."""
        direct = chain.add_pair(MON, WETH, 1000, 2000)
        chain.add_pair(WETH, FRDX, 3000, 4000)

        result = await reader.get_pairs_reserves([(MON, WETH), (FRDX, WETH), (MON, FRDX)])

        assert isinstance(result, Ok)
        first, second, missing = result.value
        assert first.address == direct
        assert first.get_reserves(MON) == (1000, 2000)
        assert second.get_reserves(FRDX) == (4000, 3000)
        assert missing is None
        assert [(to, data[:4]) for to, data in registry.calls] == [(MULTICALL, AGGREGATE_SELECTOR)] * 2

    @pytest.mark.asyncio
    async def test_batch_fills_single_read_cache(self, chain, reader, registry):
        chain.add_pair(MON, WETH, 1000, 2000)
        await reader.get_pairs_reserves([(MON, WETH)])
        calls = len(registry.calls)

        result = await reader.get_pair_reserves(WETH, MON)

        assert result.value.get_reserves(WETH) == (2000, 1000)
        assert len(registry.calls) == calls

    @pytest.mark.asyncio
    async def test_cached_legs_skip_network(self, chain, reader, registry):
        chain.add_pair(MON, WETH, 1000, 2000)
        await reader.get_pair_reserves(MON, WETH)
        calls = len(registry.calls)

        result = await reader.get_pairs_reserves([(MON, WETH)])

        assert result.value[0].get_reserves(MON) == (1000, 2000)
        assert len(registry.calls) == calls

    @pytest.mark.asyncio
    async def test_skip_cache_rereads_reserves_only(self, chain, reader, registry):
        chain.add_pair(MON, WETH, 1000, 2000)
        await reader.get_pairs_reserves([(MON, WETH)])
        chain.set_reserves(MON, WETH, 1500, 2500)

        cached = await reader.get_pairs_reserves([(MON, WETH)])
        fresh = await reader.get_pairs_reserves([(MON, WETH)], skip_cache=True)

        assert cached.value[0].get_reserves(MON) == (1000, 2000)
        assert fresh.value[0].get_reserves(MON) == (1500, 2500)
        assert len(registry.calls) == 3
        _, data = registry.calls[-1]
        (batched,) = decode(["(address,bytes)[]"], data[4:])
        assert [bytes(payload) for _, payload in batched] == [GET_RESERVES_SELECTOR]

    @pytest.mark.asyncio
    async def test_reverting_pair_fails_batch(self, chain):
        chain.add_pair(MON, WETH, 1000, 2000)
        broken = chain.add_pair(WETH, FRDX, 1000, 2000)
        registry = TransportRegistry(chain, {"https://rpc-a.test": {"fail_for": {broken}}})
        client, _ = make_client(chain, registry=registry)

        result = await PoolReader(client).get_pairs_reserves([(MON, WETH), (WETH, FRDX)])

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.REVERTED

    @pytest.mark.asyncio
    async def test_transient_failure_propagates(self, chain):
        chain.add_pair(MON, WETH, 1000, 2000)
        registry = TransportRegistry(chain, {"https://rpc-a.test": {"fail_with": RateLimited("429")}})
        client, _ = make_client(chain, registry=registry)

        result = await PoolReader(client).get_pairs_reserves([(MON, WETH)])

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.RATE_LIMITED
