"""Resilient gateway to the ledger node.

Every read of remote state goes through ChainClient.call(). The client
hides an unreliable node behind:

- a TTL cache, consulted first and used as the fallback on failure
- de-duplication of concurrent calls that share a cache key
- an adaptive throttle between outgoing requests
- a circuit breaker that stops network attempts for a cooldown window
  after a burst of failures
- failover to the next configured endpoint after sustained network
  failures, re-validated with eth_chainId
- bounded retries with exponential backoff for transient failures
- an explicit timeout per attempt; abandoned attempts keep running and
  their late results are cached for the next caller

call() is total: it never raises and never waits past its timeouts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from functools import partial
from typing import Any, TypeVar

import structlog

from dexroute.chain.cache import TTLCache
from dexroute.chain.result import Err, ErrorKind, Ok, Result
from dexroute.chain.throttle import AdaptiveThrottle
from dexroute.chain.transport import Endpoint, JsonRpcTransport, RpcTransport, classify_exception
from dexroute.clock import Clock, SystemClock
from dexroute.config import ChainClientConfig
from dexroute.errors import RpcTimeout

logger = structlog.get_logger()

T = TypeVar("T")

Operation = Callable[[RpcTransport], Awaitable[T]]
TransportFactory = Callable[[Endpoint], RpcTransport]

_MISSING = object()

# Failures that point at the endpoint itself rather than at load
_NETWORK_KINDS = frozenset({ErrorKind.NETWORK_UNAVAILABLE, ErrorKind.TIMEOUT})


class ChainClient:
    """Shared, injectable gateway for read-only chain calls.

    Args:
        endpoints: Endpoints in failover order (at least one)
        config: Tuning constants. Defaults to ChainClientConfig().
        clock: Time source. Defaults to SystemClock().
        transport_factory: Builds a transport for an endpoint.
                           Defaults to JsonRpcTransport.
        expected_chain_id: If set, endpoints reporting another chain id are
                           rejected during failover.
    """

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        *,
        config: ChainClientConfig | None = None,
        clock: Clock | None = None,
        transport_factory: TransportFactory | None = None,
        expected_chain_id: int | None = None,
    ) -> None:
        if not endpoints:
            raise ValueError("ChainClient needs at least one endpoint")

        self.config = config or ChainClientConfig()
        self._clock = clock or SystemClock()
        self._endpoints = list(endpoints)
        self._transport_factory = transport_factory or partial(JsonRpcTransport, timeout=self.config.timeout)
        self.expected_chain_id = expected_chain_id

        self._endpoint_index = 0
        self._transport: RpcTransport | None = None

        self._cache = TTLCache(self._clock.time, self.config.cache_ttl, self.config.cache_purge_threshold)
        self._inflight: dict[str, asyncio.Future[Result[Any]]] = {}
        self._background: set[asyncio.Future[Any]] = set()
        self._throttle = AdaptiveThrottle(
            self._clock,
            min_interval=self.config.min_interval,
            max_interval=self.config.max_interval,
            widen_factor=self.config.widen_factor,
            narrow_factor=self.config.narrow_factor,
            narrow_after=self.config.narrow_after_successes,
        )

        self.error_count = 0
        self._network_error_streak = 0
        self._cooldown_until = 0.0
        self.network_attempts = 0

    # --- State ---

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoints[self._endpoint_index]

    @property
    def transport(self) -> RpcTransport:
        if self._transport is None:
            self._transport = self._transport_factory(self.endpoint)
        return self._transport

    @property
    def cache(self) -> TTLCache:
        return self._cache

    @property
    def in_cooldown(self) -> bool:
        self._expire_cooldown()
        return self._cooldown_until > 0

    def is_available(self) -> bool:
        """True when the client will attempt network calls."""
        self._expire_cooldown()
        return self._cooldown_until == 0 and self.error_count < self.config.max_errors

    def status(self) -> dict[str, Any]:
        """Snapshot for health reporting."""
        self._expire_cooldown()
        return {
            "endpoint": self.endpoint.label,
            "available": self.is_available(),
            "error_count": self.error_count,
            "cooldown_remaining": max(0.0, self._cooldown_until - self._clock.time()),
            "request_interval": self._throttle.interval,
            "cache_size": len(self._cache),
            "inflight": len(self._inflight),
        }

    def reset(self) -> None:
        """Clear error state and any cooldown."""
        self.error_count = 0
        self._network_error_streak = 0
        self._cooldown_until = 0.0

    def clear_cache(self) -> None:
        self._cache.clear()

    async def aclose(self) -> None:
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        if self._transport is not None:
            await self._transport.aclose()
            self._transport = None

    # --- Public gateway ---

    async def call(
        self,
        operation: Operation[T],
        cache_key: str | None = None,
        *,
        skip_cache: bool = False,
        timeout: float | None = None,
        retries: int | None = None,
        ttl: float | None = None,
    ) -> Result[T]:
        """Run a read operation against the node.

        Args:
            operation: Async callable receiving the active transport
            cache_key: Identity of the call and its parameters. Enables the
                       cache, stale fallback and de-duplication.
            skip_cache: Ignore a fresh cached value and go to the network
            timeout: Per-attempt timeout (default config.timeout)
            retries: Extra attempts for transient failures (default config.retries)
            ttl: Cache TTL for this result (default config.cache_ttl)

        Returns:
            Ok(value), Ok(value, stale=True) when served from an expired
            cache entry after a failure, or Err(kind) when nothing usable
            is available.
        """
        if cache_key is None:
            return await self._execute(operation, None, timeout, retries, ttl)

        if not skip_cache:
            cached = self._cache.get_fresh(cache_key, _MISSING)
            if cached is not _MISSING:
                logger.debug("rpc_cache_hit", key=cache_key)
                return Ok(cached)

        inflight = self._inflight.get(cache_key)
        if inflight is not None:
            logger.debug("rpc_request_deduplicated", key=cache_key)
            return await asyncio.shield(inflight)

        future = asyncio.ensure_future(self._execute(operation, cache_key, timeout, retries, ttl))
        self._inflight[cache_key] = future
        future.add_done_callback(partial(self._release_inflight, cache_key))
        return await asyncio.shield(future)

    # --- Internals ---

    def _release_inflight(self, cache_key: str, future: asyncio.Future[Any]) -> None:
        if self._inflight.get(cache_key) is future:
            del self._inflight[cache_key]

    async def _execute(
        self,
        operation: Operation[T],
        cache_key: str | None,
        timeout: float | None,
        retries: int | None,
        ttl: float | None,
    ) -> Result[T]:
        timeout = self.config.timeout if timeout is None else timeout
        retries = self.config.retries if retries is None else retries
        attempt = 0
        last_error = Err(ErrorKind.UNAVAILABLE, "client cooling down")

        while True:
            if not self.is_available():
                logger.debug("rpc_skipped_cooldown", key=cache_key, error_count=self.error_count)
                return self._fallback(cache_key, last_error)

            await self._throttle.wait()
            # The breaker may have tripped while this call was queued
            if not self.is_available():
                logger.debug("rpc_skipped_cooldown", key=cache_key, error_count=self.error_count)
                return self._fallback(cache_key, last_error)

            try:
                value = await self._attempt(operation, cache_key, timeout, ttl)
            except Exception as exc:
                kind = classify_exception(exc)
                last_error = Err(kind, str(exc) or type(exc).__name__)
                await self._record_failure(kind, last_error.message)

                if not kind.is_transient:
                    logger.info("rpc_call_failed", key=cache_key, kind=kind.value, error=last_error.message)
                    return self._fallback(cache_key, last_error)
                if attempt >= retries:
                    logger.warning(
                        "rpc_retries_exhausted",
                        key=cache_key,
                        kind=kind.value,
                        attempts=attempt + 1,
                        error=last_error.message,
                    )
                    return self._fallback(cache_key, last_error)

                delay = self.config.retry_backoff * (2**attempt)
                attempt += 1
                logger.debug("rpc_retrying", key=cache_key, kind=kind.value, attempt=attempt, delay=delay)
                await self._clock.sleep(delay)
                continue

            self._record_success()
            if cache_key is not None and value is not None:
                self._cache.set(cache_key, value, ttl)
            return Ok(value)

    async def _attempt(
        self,
        operation: Operation[T],
        cache_key: str | None,
        timeout: float,
        ttl: float | None,
    ) -> T:
        """One network attempt with a timeout that does not cancel the work."""
        self.network_attempts += 1
        task = asyncio.ensure_future(operation(self.transport))
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if task in done:
            return task.result()

        self._background.add(task)
        task.add_done_callback(partial(self._on_abandoned_done, cache_key, ttl))
        raise RpcTimeout(f"Call timed out after {timeout}s on {self.endpoint.label}")

    def _on_abandoned_done(self, cache_key: str | None, ttl: float | None, task: asyncio.Future[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("rpc_abandoned_call_failed", key=cache_key, error=str(exc))
            return
        result = task.result()
        if cache_key is not None and result is not None:
            self._cache.set(cache_key, result, ttl)
            logger.debug("rpc_late_result_cached", key=cache_key)

    def _fallback(self, cache_key: str | None, error: Err) -> Result[Any]:
        if cache_key is not None and cache_key in self._cache:
            logger.info("rpc_serving_stale_cache", key=cache_key, kind=error.kind.value)
            return Ok(self._cache.get_any(cache_key), stale=not self._cache.has_fresh(cache_key))
        return error

    def _record_success(self) -> None:
        if self.error_count > 0:
            self.error_count -= 1
        self._network_error_streak = 0
        self._throttle.record_success()

    async def _record_failure(self, kind: ErrorKind, message: str) -> None:
        # A revert means the node answered; it says nothing about its health
        if kind is ErrorKind.REVERTED:
            return

        self.error_count += 1
        self._throttle.record_error()

        if kind in _NETWORK_KINDS:
            self._network_error_streak += 1
        else:
            self._network_error_streak = 0

        if self.error_count >= self.config.max_errors and self._cooldown_until == 0:
            self._start_cooldown(kind, message)
        elif self._network_error_streak >= self.config.failover_threshold:
            await self._failover()

    def _start_cooldown(self, kind: ErrorKind, message: str) -> None:
        if kind is ErrorKind.RATE_LIMITED:
            duration = self.config.rate_limit_cooldown
        elif kind in _NETWORK_KINDS:
            duration = self.config.network_cooldown
        else:
            duration = self.config.error_cooldown
        self._cooldown_until = self._clock.time() + duration
        logger.warning(
            "rpc_cooldown_started",
            endpoint=self.endpoint.label,
            kind=kind.value,
            cooldown_seconds=duration,
            error_count=self.error_count,
            error=message,
        )

    def _expire_cooldown(self) -> None:
        if self._cooldown_until and self._clock.time() >= self._cooldown_until:
            self._cooldown_until = 0.0
            # Partial reset: one more burst re-trips the breaker quickly
            self.error_count = min(self.error_count, self.config.max_errors // 2)
            logger.info("rpc_cooldown_expired", endpoint=self.endpoint.label, error_count=self.error_count)

    async def _failover(self) -> bool:
        """Rotate to the next endpoint that answers with the expected chain id."""
        self._network_error_streak = 0
        count = len(self._endpoints)
        if count == 1:
            return False

        for step in range(1, count):
            index = (self._endpoint_index + step) % count
            candidate = self._transport_factory(self._endpoints[index])
            if await self._validate(candidate):
                previous = self._transport
                self._transport = candidate
                old_label = self.endpoint.label
                self._endpoint_index = index
                self.error_count = 0
                logger.info("rpc_endpoint_rotated", previous=old_label, endpoint=self.endpoint.label)
                if previous is not None:
                    await previous.aclose()
                return True
            await candidate.aclose()

        logger.warning("rpc_failover_exhausted", endpoint=self.endpoint.label, tried=count - 1)
        return False

    async def _validate(self, transport: RpcTransport) -> bool:
        try:
            chain_id = await asyncio.wait_for(transport.chain_id(), timeout=self.config.timeout)
        except Exception as exc:
            logger.warning("rpc_endpoint_validation_failed", endpoint=transport.endpoint.label, error=str(exc))
            return False
        if self.expected_chain_id is not None and chain_id != self.expected_chain_id:
            logger.warning(
                "rpc_chain_id_mismatch",
                endpoint=transport.endpoint.label,
                chain_id=chain_id,
                expected=self.expected_chain_id,
            )
            return False
        return True


__all__ = ["ChainClient", "Operation", "TransportFactory"]
