"""Read-only pool and token state through the chain client.

Each read encodes its calldata with eth_abi, runs through
ChainClient.call() with a cache key naming the call and its parameters,
and decodes the result. Failures come back as Err, never as exceptions.

get_pairs_reserves() batches many lookups into multicall aggregate()
requests and writes each answer back under the single-read cache keys.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from eth_abi import decode, encode  # type: ignore[attr-defined]

from dexroute.amm.library import sort_tokens
from dexroute.amm.pair import Pair
from dexroute.chain.client import ChainClient
from dexroute.chain.result import Err, Ok, Result
from dexroute.chain.transport import RpcTransport
from dexroute.constants import FACTORY, MULTICALL
from dexroute.models.types import ZERO_ADDRESS, address_to_bytes, normalize_address

logger = structlog.get_logger()

# Function selectors
GET_PAIR_SELECTOR = bytes.fromhex("e6a43905")  # getPair(address,address)
GET_RESERVES_SELECTOR = bytes.fromhex("0902f1ac")  # getReserves()
TOKEN0_SELECTOR = bytes.fromhex("0dfe1681")  # token0()
TOKEN1_SELECTOR = bytes.fromhex("d21220a7")  # token1()
TOTAL_SUPPLY_SELECTOR = bytes.fromhex("18160ddd")  # totalSupply()
BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")  # balanceOf(address)
AGGREGATE_SELECTOR = bytes.fromhex("252dba42")  # aggregate((address,bytes)[])

# Pair addresses and token order never change once a pair exists
IMMUTABLE_TTL = 3600.0


def _decode_address(data: bytes) -> str:
    (address,) = decode(["address"], data)
    return normalize_address(address)


def _decode_uint(data: bytes) -> int:
    (value,) = decode(["uint256"], data)
    return int(value)


def _decode_reserves(data: bytes) -> tuple[int, int]:
    reserve0, reserve1, _timestamp = decode(["uint112", "uint112", "uint32"], data)
    return int(reserve0), int(reserve1)


def _get_pair_data(token0: str, token1: str) -> bytes:
    return GET_PAIR_SELECTOR + encode(["address", "address"], [address_to_bytes(token0), address_to_bytes(token1)])


# Cache keys shared by single and batched reads
def _pair_key(token0: str, token1: str) -> str:
    return f"pair_{token0}_{token1}"


def _token0_key(pair: str) -> str:
    return f"token0_{pair}"


def _reserves_key(pair: str) -> str:
    return f"reserves_{pair}"


class PoolReader:
    """Typed reads of factory, pair and token contracts.

    Args:
        client: Shared chain client
        factory: Factory contract address
        multicall: Multicall contract address used for batched reads
    """

    def __init__(self, client: ChainClient, factory: str = FACTORY, multicall: str = MULTICALL) -> None:
        self.client = client
        self.factory = normalize_address(factory)
        self.multicall_address = normalize_address(multicall)

    async def get_pair(self, token_a: str, token_b: str) -> Result[str | None]:
        """Pair address for two tokens, Ok(None) if the factory has none."""
        token0, token1 = sort_tokens(token_a, token_b)
        data = _get_pair_data(token0, token1)

        async def op(transport: RpcTransport) -> str | None:
            address = _decode_address(await transport.eth_call(self.factory, data))
            return None if address == ZERO_ADDRESS else address

        return await self.client.call(op, _pair_key(token0, token1), ttl=IMMUTABLE_TTL)

    async def get_token0(self, pair: str) -> Result[str]:
        pair = normalize_address(pair)

        async def op(transport: RpcTransport) -> str:
            return _decode_address(await transport.eth_call(pair, TOKEN0_SELECTOR))

        return await self.client.call(op, _token0_key(pair), ttl=IMMUTABLE_TTL)

    async def get_token1(self, pair: str) -> Result[str]:
        pair = normalize_address(pair)

        async def op(transport: RpcTransport) -> str:
            return _decode_address(await transport.eth_call(pair, TOKEN1_SELECTOR))

        return await self.client.call(op, f"token1_{pair}", ttl=IMMUTABLE_TTL)

    async def get_raw_reserves(self, pair: str, *, skip_cache: bool = False) -> Result[tuple[int, int]]:
        """(reserve0, reserve1) in the pair's own token order."""
        pair = normalize_address(pair)

        async def op(transport: RpcTransport) -> tuple[int, int]:
            return _decode_reserves(await transport.eth_call(pair, GET_RESERVES_SELECTOR))

        return await self.client.call(op, _reserves_key(pair), skip_cache=skip_cache)

    async def get_reserves(self, pair: str, token_in: str, *, skip_cache: bool = False) -> Result[tuple[int, int]]:
        """Reserves ordered as (reserve_in, reserve_out) for a trade selling token_in.

        The result is stale if either underlying read was served stale.
        """
        token0 = await self.get_token0(pair)
        if isinstance(token0, Err):
            return token0
        raw = await self.get_raw_reserves(pair, skip_cache=skip_cache)
        if isinstance(raw, Err):
            return raw

        reserve0, reserve1 = raw.value
        ordered = (reserve0, reserve1) if normalize_address(token_in) == token0.value else (reserve1, reserve0)
        return Ok(ordered, stale=token0.stale or raw.stale)

    async def get_total_supply(self, pair: str) -> Result[int]:
        pair = normalize_address(pair)

        async def op(transport: RpcTransport) -> int:
            return _decode_uint(await transport.eth_call(pair, TOTAL_SUPPLY_SELECTOR))

        return await self.client.call(op, f"supply_{pair}")

    async def get_balance(self, token: str, account: str) -> Result[int]:
        token = normalize_address(token)
        account = normalize_address(account)
        data = BALANCE_OF_SELECTOR + encode(["address"], [address_to_bytes(account)])

        async def op(transport: RpcTransport) -> int:
            return _decode_uint(await transport.eth_call(token, data))

        return await self.client.call(op, f"balance_{token}_{account}")

    async def get_pair_reserves(self, token_a: str, token_b: str, *, skip_cache: bool = False) -> Result[Pair | None]:
        """Factory lookup plus reserves in one step.

        Returns:
            Ok(Pair), Ok(None) when no pair exists, or the first Err met.
        """
        pair_address = await self.get_pair(token_a, token_b)
        if isinstance(pair_address, Err):
            return pair_address
        if pair_address.value is None:
            return Ok(None, stale=pair_address.stale)

        reserves = await self.get_reserves(pair_address.value, token_a, skip_cache=skip_cache)
        if isinstance(reserves, Err):
            return reserves

        reserve_a, reserve_b = reserves.value
        pair = Pair.from_unsorted(pair_address.value, token_a, token_b, reserve_a, reserve_b)
        return Ok(pair, stale=pair_address.stale or reserves.stale)

    async def multicall(self, calls: Sequence[tuple[str, bytes]]) -> Result[list[bytes]]:
        """Run several eth_calls as one aggregate() request.

        The contract reverts the whole batch if any call in it reverts.

        Returns:
            Ok with the raw return data of each call, in order.
        """
        if not calls:
            return Ok([])
        data = AGGREGATE_SELECTOR + encode(
            ["(address,bytes)[]"], [[(address_to_bytes(normalize_address(to)), payload) for to, payload in calls]]
        )

        async def op(transport: RpcTransport) -> list[bytes]:
            _block, return_data = decode(["uint256", "bytes[]"], await transport.eth_call(self.multicall_address, data))
            return [bytes(item) for item in return_data]

        return await self.client.call(op)

    async def get_pairs_reserves(
        self, legs: Sequence[tuple[str, str]], *, skip_cache: bool = False
    ) -> Result[list[Pair | None]]:
        """get_pair_reserves() for many token pairs in at most two requests.

        Lookups with a fresh cache entry are answered locally. The rest go
        out as one multicall of factory getPair reads and one of token0 and
        getReserves reads for every pair found. Answers are cached under the
        same keys the single reads use.

        Args:
            legs: (token_a, token_b) pairs; reserves come back in that order
            skip_cache: Re-read reserves even when cached

        Returns:
            Ok with one entry per leg (None where no pair exists), or the
            Err of the first batch that failed.
        """
        cache = self.client.cache
        sorted_legs = [sort_tokens(token_a, token_b) for token_a, token_b in legs]

        addresses: dict[tuple[str, str], str | None] = {}
        lookups = []
        for leg in dict.fromkeys(sorted_legs):
            cached = cache.get_fresh(_pair_key(*leg))
            if cached is None:
                lookups.append(leg)
            else:
                addresses[leg] = cached

        found = await self.multicall([(self.factory, _get_pair_data(*leg)) for leg in lookups])
        if isinstance(found, Err):
            return found
        for leg, data in zip(lookups, found.value):
            address = _decode_address(data)
            if address == ZERO_ADDRESS:
                addresses[leg] = None
            else:
                addresses[leg] = address
                cache.set(_pair_key(*leg), address, IMMUTABLE_TTL)

        token0s: dict[str, str] = {}
        reserves: dict[str, tuple[int, int]] = {}
        calls: list[tuple[str, bytes]] = []
        for pair in dict.fromkeys(address for address in addresses.values() if address is not None):
            token0 = cache.get_fresh(_token0_key(pair))
            if token0 is None:
                calls.append((pair, TOKEN0_SELECTOR))
            else:
                token0s[pair] = token0
            raw = None if skip_cache else cache.get_fresh(_reserves_key(pair))
            if raw is None:
                calls.append((pair, GET_RESERVES_SELECTOR))
            else:
                reserves[pair] = raw

        state = await self.multicall(calls)
        if isinstance(state, Err):
            return state
        for (pair, selector), data in zip(calls, state.value):
            if selector == TOKEN0_SELECTOR:
                token0s[pair] = _decode_address(data)
                cache.set(_token0_key(pair), token0s[pair], IMMUTABLE_TTL)
            else:
                reserves[pair] = _decode_reserves(data)
                cache.set(_reserves_key(pair), reserves[pair])

        logger.debug("pool_batch_read", legs=len(legs), pair_lookups=len(lookups), state_reads=len(calls))

        pairs: list[Pair | None] = []
        for (token_a, token_b), leg in zip(legs, sorted_legs):
            address = addresses[leg]
            if address is None:
                pairs.append(None)
                continue
            reserve0, reserve1 = reserves[address]
            if normalize_address(token_a) == token0s[address]:
                reserve_a, reserve_b = reserve0, reserve1
            else:
                reserve_a, reserve_b = reserve1, reserve0
            pairs.append(Pair.from_unsorted(address, token_a, token_b, reserve_a, reserve_b))
        return Ok(pairs)


__all__ = [
    "PoolReader",
    "GET_PAIR_SELECTOR",
    "GET_RESERVES_SELECTOR",
    "TOKEN0_SELECTOR",
    "TOKEN1_SELECTOR",
    "TOTAL_SUPPLY_SELECTOR",
    "BALANCE_OF_SELECTOR",
    "AGGREGATE_SELECTOR",
]
