"""Explicit outcome of a chain read.

ChainClient.call never raises. It returns Ok with the value (possibly a
stale cached one) or Err with the reason, so callers can tell "the node is
unreachable" apart from "the pool has no liquidity" without guessing from
a bare None.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    NETWORK_UNAVAILABLE = "network_unavailable"
    # Client is cooling down and had nothing cached for the key
    UNAVAILABLE = "unavailable"
    REVERTED = "reverted"
    RPC_ERROR = "rpc_error"

    @property
    def is_transient(self) -> bool:
        return self in _TRANSIENT


_TRANSIENT = frozenset(
    {
        ErrorKind.TIMEOUT,
        ErrorKind.RATE_LIMITED,
        ErrorKind.NETWORK_UNAVAILABLE,
        ErrorKind.UNAVAILABLE,
    }
)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    # True when served from an expired cache entry because the node failed
    stale: bool = False

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False

    @property
    def is_transient(self) -> bool:
        return self.kind.is_transient

    def unwrap_or(self, default: T) -> T:
        return default


Result = Ok[T] | Err

__all__ = ["ErrorKind", "Ok", "Err", "Result"]
