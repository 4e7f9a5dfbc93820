"""Classification and translation of raw failure messages.

Wallets, routers and nodes report failures as free text ("execution
reverted: UniswapV2Router: EXPIRED", "user rejected transaction", ...).
classify_error() folds that text into a small taxonomy; translate_error()
turns it into one sentence fit for a person, or None for transient noise
that should never be shown.
"""

from __future__ import annotations

from enum import Enum

from dexroute.errors import ChainError, InsufficientLiquidity


class ErrorCategory(str, Enum):
    USER_REJECTED = "user_rejected"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    DEADLINE_EXPIRED = "deadline_expired"
    PRICE_MOVED = "price_moved"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    POOL_INVARIANT = "pool_invariant"
    GENERIC = "generic"
    # Transient network noise; never surfaced
    SILENT = "silent"


# Checked in order; first match wins
_SIGNATURES: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (
        ErrorCategory.USER_REJECTED,
        ("user rejected", "user denied", "action_rejected", "rejected by user", "user cancelled", "code=4001"),
    ),
    (
        ErrorCategory.INSUFFICIENT_FUNDS,
        ("insufficient funds", "insufficient balance", "transfer amount exceeds balance", "exceeds balance"),
    ),
    (ErrorCategory.DEADLINE_EXPIRED, ("expired", "deadline")),
    (
        ErrorCategory.PRICE_MOVED,
        ("insufficient_output_amount", "excessive_input_amount", "slippage", "price moved", "price impact too high"),
    ),
    (ErrorCategory.INSUFFICIENT_LIQUIDITY, ("insufficient_liquidity", "insufficient liquidity")),
    (ErrorCategory.POOL_INVARIANT, ("uniswapv2: k", "pool invariant", "invariant violation")),
    (
        ErrorCategory.SILENT,
        (
            "429",
            "too many requests",
            "rate limit",
            "timeout",
            "timed out",
            "cors",
            "failed to fetch",
            "err_failed",
            "network error",
            "coalesce",
            "econnrefused",
            "econnreset",
        ),
    ),
]

MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.USER_REJECTED: "Transaction cancelled.",
    ErrorCategory.INSUFFICIENT_FUNDS: "Insufficient balance to cover this trade and its gas fee.",
    ErrorCategory.DEADLINE_EXPIRED: "Transaction deadline expired. Please try again.",
    ErrorCategory.PRICE_MOVED: "Price moved beyond your slippage tolerance. Increase slippage or try again.",
    ErrorCategory.INSUFFICIENT_LIQUIDITY: "Not enough liquidity in this pool for the trade.",
    ErrorCategory.POOL_INVARIANT: "The pool rejected the trade because its reserves changed. Please try again.",
    ErrorCategory.GENERIC: "Transaction failed. Please try again.",
}


def _error_text(error: BaseException | str) -> str:
    if isinstance(error, str):
        return error
    # Wallet libraries put the revert string in .reason
    reason = getattr(error, "reason", None)
    return str(reason) if reason else str(error)


def classify_error(error: BaseException | str) -> ErrorCategory:
    """Fold a raw failure into the error taxonomy."""
    if isinstance(error, ChainError) and error.transient:
        return ErrorCategory.SILENT
    if isinstance(error, InsufficientLiquidity):
        return ErrorCategory.INSUFFICIENT_LIQUIDITY

    text = _error_text(error).lower()
    for category, signatures in _SIGNATURES:
        if any(sig in text for sig in signatures):
            return category
    return ErrorCategory.GENERIC


def translate_error(error: BaseException | str) -> str | None:
    """One human-readable sentence for a failure, or None if it should stay silent."""
    category = classify_error(error)
    if category is ErrorCategory.SILENT:
        return None
    return MESSAGES[category]


def should_surface(error: BaseException | str) -> bool:
    return classify_error(error) is not ErrorCategory.SILENT


__all__ = ["ErrorCategory", "MESSAGES", "classify_error", "translate_error", "should_surface"]
