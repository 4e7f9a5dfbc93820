"""UniswapV2 library math for off-chain quoting.

Constant product formula: x * y = k, with a 0.3% fee on input amounts.

Every monetary quantity is an int in token base units. Percentages are
returned as Decimal so they can be displayed without float drift.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from eth_utils import keccak

from dexroute.constants import FEE_DENOMINATOR, FEE_NUMERATOR, MINIMUM_LIQUIDITY
from dexroute.errors import (
    IdenticalAddresses,
    InsufficientAmount,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidPath,
    ZeroAddress,
)
from dexroute.models.types import ZERO_ADDRESS, address_to_bytes, normalize_address
from dexroute.safe_int import S

_HUNDRED = Decimal(100)


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Sort two token addresses the way the factory orders pair tokens.

    Args:
        token_a: First token address
        token_b: Second token address

    Returns:
        (token0, token1), lowercase, token0 < token1

    Raises:
        IdenticalAddresses: If both addresses are the same token
        ZeroAddress: If the lower address is the zero address
    """
    a = normalize_address(token_a)
    b = normalize_address(token_b)
    if a == b:
        raise IdenticalAddresses(f"Identical addresses: {token_a}")

    token0, token1 = (a, b) if a < b else (b, a)
    if token0 == ZERO_ADDRESS:
        raise ZeroAddress("Pair token cannot be the zero address")
    return token0, token1


def pair_for(factory: str, token_a: str, token_b: str, init_code_hash: str) -> str:
    """Compute the CREATE2 address of a pair without any RPC call.

    Returns:
        Lowercase pair address
    """
    token0, token1 = sort_tokens(token_a, token_b)
    salt = keccak(address_to_bytes(token0) + address_to_bytes(token1))
    code_hash = bytes.fromhex(init_code_hash.removeprefix("0x"))
    digest = keccak(b"\xff" + address_to_bytes(factory) + salt + code_hash)
    return "0x" + digest[12:].hex()


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Equivalent amount of the other asset at the current pool ratio (no fee).

    Raises:
        InsufficientAmount: If amount_a <= 0
        InsufficientLiquidity: If either reserve <= 0
    """
    if amount_a <= 0:
        raise InsufficientAmount(f"Amount must be positive: {amount_a}")
    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity(f"Empty reserves: {reserve_a}, {reserve_b}")

    return (S(amount_a) * S(reserve_b) // S(reserve_a)).value


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Maximum output for an exact input.

    Formula: amount_out = (in * 997 * res_out) / (res_in * 1000 + in * 997)

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool

    Returns:
        Output token amount, rounded down

    Raises:
        InsufficientInputAmount: If amount_in <= 0
        InsufficientLiquidity: If either reserve <= 0
    """
    if amount_in <= 0:
        raise InsufficientInputAmount(f"Input amount must be positive: {amount_in}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves: {reserve_in}, {reserve_out}")

    amount_in_with_fee = S(amount_in) * FEE_NUMERATOR
    numerator = amount_in_with_fee * S(reserve_out)
    denominator = S(reserve_in) * FEE_DENOMINATOR + amount_in_with_fee

    return (numerator // denominator).value


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """Minimum input required for an exact output.

    Formula: amount_in = (res_in * out * 1000) / ((res_out - out) * 997) + 1

    The trailing +1 rounds up so the pool is never under-funded.

    Raises:
        InsufficientOutputAmount: If amount_out <= 0
        InsufficientLiquidity: If either reserve <= 0 or amount_out >= reserve_out
    """
    if amount_out <= 0:
        raise InsufficientOutputAmount(f"Output amount must be positive: {amount_out}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves: {reserve_in}, {reserve_out}")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"Output {amount_out} would drain reserve {reserve_out}")

    numerator = S(reserve_in) * S(amount_out) * FEE_DENOMINATOR
    denominator = (S(reserve_out) - S(amount_out)) * FEE_NUMERATOR

    return (numerator // denominator + 1).value


def get_amounts_out(
    amount_in: int,
    path: Sequence[str],
    reserves: Sequence[tuple[int, int]],
) -> list[int]:
    """Chain get_amount_out along a path.

    Args:
        amount_in: Input amount for the first hop
        path: Token addresses, at least two
        reserves: (reserve_in, reserve_out) for each hop

    Returns:
        Amounts at each token of the path; amounts[0] == amount_in

    Raises:
        InvalidPath: If the path is too short or reserves don't match it
    """
    _check_path(path, reserves)

    amounts = [amount_in]
    for reserve_in, reserve_out in reserves:
        amounts.append(get_amount_out(amounts[-1], reserve_in, reserve_out))
    return amounts


def get_amounts_in(
    amount_out: int,
    path: Sequence[str],
    reserves: Sequence[tuple[int, int]],
) -> list[int]:
    """Chain get_amount_in backwards along a path.

    Returns:
        Amounts at each token of the path; amounts[-1] == amount_out

    Raises:
        InvalidPath: If the path is too short or reserves don't match it
    """
    _check_path(path, reserves)

    amounts = [0] * len(path)
    amounts[-1] = amount_out
    for i in range(len(path) - 1, 0, -1):
        reserve_in, reserve_out = reserves[i - 1]
        amounts[i - 1] = get_amount_in(amounts[i], reserve_in, reserve_out)
    return amounts


def _check_path(path: Sequence[str], reserves: Sequence[tuple[int, int]]) -> None:
    if len(path) < 2:
        raise InvalidPath(f"Path needs at least 2 tokens, got {len(path)}")
    if len(reserves) != len(path) - 1:
        raise InvalidPath(f"Path of {len(path)} tokens needs {len(path) - 1} reserve pairs, got {len(reserves)}")


def calculate_price_impact(
    amount_in: int,
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
) -> Decimal:
    """Percentage by which the execution price falls short of the spot price.

    spot = reserve_out / reserve_in, execution = amount_out / amount_in.
    The fee is part of the measured impact. Negative values (rounding
    artifacts) are clamped to zero.

    Returns:
        Impact in percent, >= 0
    """
    if reserve_in <= 0 or reserve_out <= 0 or amount_in <= 0:
        return Decimal(0)

    # (spot - exec) / spot == 1 - (out * res_in) / (in * res_out)
    spot_value = amount_in * reserve_out
    shortfall = spot_value - amount_out * reserve_in
    if shortfall <= 0:
        return Decimal(0)
    return Decimal(shortfall) * _HUNDRED / Decimal(spot_value)


def calculate_liquidity_minted(
    amount_a: int,
    amount_b: int,
    reserve_a: int,
    reserve_b: int,
    total_supply: int,
) -> int:
    """Pool shares minted for a deposit.

    First deposit: isqrt(a * b) - MINIMUM_LIQUIDITY (the floor is locked
    forever). Later deposits: the smaller of the two proportional shares.

    Returns:
        Shares minted, never negative
    """
    if total_supply == 0:
        return (S(amount_a) * S(amount_b)).isqrt().saturating_sub(MINIMUM_LIQUIDITY).value

    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity(f"Empty reserves with supply {total_supply}")

    liquidity_a = S(amount_a) * S(total_supply) // S(reserve_a)
    liquidity_b = S(amount_b) * S(total_supply) // S(reserve_b)
    return liquidity_a.min(liquidity_b).value


def calculate_remove_liquidity(
    liquidity: int,
    reserve_a: int,
    reserve_b: int,
    total_supply: int,
) -> tuple[int, int]:
    """Token amounts returned for burning pool shares."""
    if total_supply == 0:
        return 0, 0

    amount_a = S(liquidity) * S(reserve_a) // S(total_supply)
    amount_b = S(liquidity) * S(reserve_b) // S(total_supply)
    return amount_a.value, amount_b.value


def calculate_pool_share(user_liquidity: int, total_supply: int) -> Decimal:
    """User's share of the pool in percent."""
    if total_supply == 0:
        return Decimal(0)
    return Decimal(user_liquidity) * _HUNDRED / Decimal(total_supply)


def isqrt(value: int) -> int:
    """Integer square root (Babylonian method)."""
    return S(value).isqrt().value


def calculate_min_amount(amount: int, slippage_percent: Decimal | int | str) -> int:
    """Minimum acceptable output for a slippage tolerance.

    Tolerance is truncated to whole basis points.

    Raises:
        ValueError: If the tolerance is outside [0, 100]
    """
    bps = int((Decimal(str(slippage_percent)) * _HUNDRED).to_integral_value(rounding=ROUND_DOWN))
    if bps < 0 or bps > 10_000:
        raise ValueError(f"Slippage must be within 0-100%: {slippage_percent}")
    return (S(amount) * (10_000 - bps) // 10_000).value


def get_deadline(minutes: int = 20, now: float | None = None) -> int:
    """Unix timestamp `minutes` from now."""
    current = time.time() if now is None else now
    return int(current) + minutes * 60


def is_native_token(address: str) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


def wrapped_token(address: str, wrapped_native: str) -> str:
    """Map the native sentinel to the wrapped-native address."""
    if is_native_token(address):
        return normalize_address(wrapped_native)
    return normalize_address(address)


def format_token_amount(amount: int, decimals: int = 18) -> str:
    """Compact human-readable form of a base-unit amount.

    Examples: '0', '<0.0001', '0.500000', '12.3400', '1.50K', '2.00M'
    """
    value = Decimal(amount).scaleb(-decimals)
    if value == 0:
        return "0"
    if value < Decimal("0.0001"):
        return "<0.0001"
    if value < 1:
        return f"{value:.6f}"
    if value < 1_000:
        return f"{value:.4f}"
    if value < 1_000_000:
        return f"{value / 1_000:.2f}K"
    if value < 1_000_000_000:
        return f"{value / 1_000_000:.2f}M"
    return f"{value / 1_000_000_000:.2f}B"


def parse_token_amount(text: str, decimals: int = 18) -> int:
    """Parse a human amount ('1.5') into base units.

    Digits beyond `decimals` are truncated. Unparseable or negative input
    yields 0.
    """
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        return 0
    if not value.is_finite() or value < 0:
        return 0
    return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


__all__ = [
    "sort_tokens",
    "pair_for",
    "quote",
    "get_amount_out",
    "get_amount_in",
    "get_amounts_out",
    "get_amounts_in",
    "calculate_price_impact",
    "calculate_liquidity_minted",
    "calculate_remove_liquidity",
    "calculate_pool_share",
    "isqrt",
    "calculate_min_amount",
    "get_deadline",
    "is_native_token",
    "wrapped_token",
    "format_token_amount",
    "parse_token_amount",
]
