"""JSON-RPC transport to a ledger node over httpx."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from dexroute.chain.result import ErrorKind
from dexroute.errors import (
    CallReverted,
    ChainError,
    NetworkUnavailable,
    RateLimited,
    RpcError,
    RpcTimeout,
)

# JSON-RPC error codes used by common node implementations
RPC_LIMIT_EXCEEDED = -32005
RPC_EXECUTION_REVERTED = 3

_RATE_LIMIT_SIGNATURES = ("429", "too many requests", "rate limit", "rate-limit")
_NETWORK_SIGNATURES = (
    "cors",
    "err_failed",
    "failed to fetch",
    "coalesce",
    "network",
    "connection",
    "econnrefused",
    "econnreset",
    "bad gateway",
    "service unavailable",
)


@dataclass(frozen=True)
class Endpoint:
    """An RPC endpoint, optionally reached through an HTTP proxy."""

    url: str
    proxy: str | None = None

    @property
    def label(self) -> str:
        return f"{self.url} (via proxy)" if self.proxy else self.url


def load_endpoints(urls: list[str], proxy_url: str | None = None) -> list[Endpoint]:
    """Direct endpoints first, then the same endpoints through the proxy."""
    endpoints = [Endpoint(url=u) for u in urls]
    if proxy_url:
        endpoints += [Endpoint(url=u, proxy=proxy_url) for u in urls]
    return endpoints


class RpcTransport(Protocol):
    """Minimal node interface used by ChainClient operations.

    Implemented by JsonRpcTransport; tests supply in-memory fakes.
    """

    endpoint: Endpoint

    async def request(self, method: str, params: list[Any]) -> Any: ...

    async def eth_call(self, to: str, data: bytes) -> bytes: ...

    async def chain_id(self) -> int: ...

    async def aclose(self) -> None: ...


class JsonRpcTransport:
    """Sends JSON-RPC requests to one endpoint.

    Raises ChainError subclasses only; httpx errors never leak out.

    Args:
        endpoint: Where to send requests
        client: Optional preconfigured httpx client (owned by the caller)
        timeout: Socket timeout when this transport creates its own client
    """

    def __init__(
        self,
        endpoint: Endpoint,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, proxy=endpoint.proxy)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self.endpoint.url, json=payload)
        except httpx.TimeoutException as e:
            raise RpcTimeout(f"{method} timed out on {self.endpoint.label}") from e
        except httpx.TransportError as e:
            raise NetworkUnavailable(f"{method} failed on {self.endpoint.label}: {e}") from e

        if response.status_code == 429:
            raise RateLimited(f"429 Too Many Requests from {self.endpoint.label}")
        if response.status_code >= 500:
            raise NetworkUnavailable(f"HTTP {response.status_code} from {self.endpoint.label}")
        if response.status_code != 200:
            raise RpcError(f"HTTP {response.status_code} from {self.endpoint.label}")

        try:
            body = response.json()
        except ValueError as e:
            raise RpcError(f"Invalid JSON from {self.endpoint.label}") from e

        error = body.get("error")
        if error:
            raise _error_from_rpc(error)
        return body.get("result")

    async def eth_call(self, to: str, data: bytes) -> bytes:
        result = await self.request("eth_call", [{"to": to, "data": "0x" + data.hex()}, "latest"])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcError(f"Unexpected eth_call result: {result!r}")
        return bytes.fromhex(result[2:])

    async def chain_id(self) -> int:
        result = await self.request("eth_chainId", [])
        return int(result, 16)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _error_from_rpc(error: Any) -> ChainError:
    if not isinstance(error, dict):
        return RpcError(str(error))
    code = error.get("code")
    message = str(error.get("message", ""))
    lowered = message.lower()
    if code == RPC_LIMIT_EXCEEDED or any(sig in lowered for sig in _RATE_LIMIT_SIGNATURES):
        return RateLimited(message)
    if code == RPC_EXECUTION_REVERTED or "revert" in lowered:
        return CallReverted(message)
    return RpcError(f"{code}: {message}")


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map any failure of a chain operation to an ErrorKind.

    Typed errors are mapped directly. Anything else (errors raised by a
    third-party client inside an operation) is classified by the
    signatures in its message.
    """
    if isinstance(exc, RateLimited):
        return ErrorKind.RATE_LIMITED
    if isinstance(exc, RpcTimeout | TimeoutError | httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, NetworkUnavailable | httpx.TransportError | ConnectionError):
        return ErrorKind.NETWORK_UNAVAILABLE
    if isinstance(exc, CallReverted):
        return ErrorKind.REVERTED
    if isinstance(exc, RpcError):
        return ErrorKind.RPC_ERROR

    message = str(exc).lower()
    if any(sig in message for sig in _RATE_LIMIT_SIGNATURES):
        return ErrorKind.RATE_LIMITED
    if "timeout" in message or "timed out" in message:
        return ErrorKind.TIMEOUT
    if any(sig in message for sig in _NETWORK_SIGNATURES):
        return ErrorKind.NETWORK_UNAVAILABLE
    if "revert" in message:
        return ErrorKind.REVERTED
    return ErrorKind.RPC_ERROR


__all__ = [
    "Endpoint",
    "load_endpoints",
    "RpcTransport",
    "JsonRpcTransport",
    "classify_exception",
]
