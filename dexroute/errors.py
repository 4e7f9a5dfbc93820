"""Error classes.

Three families:
- AmmError: deterministic faults of the constant-product math. Always raised.
- ChainError: transport faults of the remote node. Raised by the transport,
  absorbed by ChainClient and turned into an Err result.
- OrderError: illegal limit-order lifecycle operations.
"""


class AmmError(Exception):
    """Base error for AMM library operations."""

    pass


class InsufficientAmount(AmmError):
    """Input amount must be positive."""

    pass


class InsufficientInputAmount(InsufficientAmount):
    """Swap input amount must be positive."""

    pass


class InsufficientOutputAmount(AmmError):
    """Requested output amount must be positive."""

    pass


class InsufficientLiquidity(AmmError):
    """A reserve is empty, or the request would drain it."""

    pass


class InvalidPath(AmmError):
    """Swap path needs at least two tokens and one reserve pair per hop."""

    pass


class IdenticalAddresses(AmmError):
    """A pair cannot be formed from a token and itself."""

    pass


class ZeroAddress(AmmError):
    """The zero address cannot be part of a pair."""

    pass


class ChainError(Exception):
    """Base error for remote node calls."""

    transient: bool = False


class RpcTimeout(ChainError):
    """The node did not answer within the call timeout."""

    transient = True


class RateLimited(ChainError):
    """The node answered HTTP 429 or a rate-limit JSON-RPC error."""

    transient = True


class NetworkUnavailable(ChainError):
    """Connection failure, proxy failure or server-side (5xx) error."""

    transient = True


class CallReverted(ChainError):
    """The eth_call reverted on-chain. Never retried."""

    pass


class RpcError(ChainError):
    """Any other JSON-RPC error response."""

    pass


class OrderError(Exception):
    """Base error for limit-order operations."""

    pass


class OrderNotFound(OrderError):
    """No order with the given id."""

    pass


class OrderStateError(OrderError):
    """The order has already left the active state."""

    pass
