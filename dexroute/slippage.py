"""Slippage tolerance recommendations from pool depth and trade size.

Pure functions of (amount_in, reserve_in, reserve_out). Two signals drive
the recommendation: trade size as a percentage of the input reserve and the
price impact of the trade. The larger of the two picks the severity band.

| Signal  | Severity | Recommended slippage            |
|---------|----------|---------------------------------|
| > 10%   | critical | impact x 1.5, clamped to [5, 10]|
| > 5%    | high     | impact x 1.3, clamped to [3, 5] |
| > 2%    | medium   | impact x 1.2, clamped to [1, 3] |
| > 0.5%  | low      | 0.5                             |
| else    | low      | 0.3                             |

A pool with an empty reserve is critical with a 5% recommendation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from dexroute.amm.library import calculate_price_impact, get_amount_out
from dexroute.errors import InsufficientInputAmount

_HUNDRED = Decimal(100)
_CENT = Decimal("0.01")

CRITICAL_THRESHOLD = Decimal(10)
HIGH_THRESHOLD = Decimal(5)
MEDIUM_THRESHOLD = Decimal(2)
LOW_THRESHOLD = Decimal("0.5")

EMPTY_POOL_SLIPPAGE = Decimal(5)
LOW_SLIPPAGE = Decimal("0.5")
MINIMAL_SLIPPAGE = Decimal("0.3")


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def tolerable(self) -> bool:
        """Low and medium trades may proceed with less than the recommendation."""
        return self in (Severity.LOW, Severity.MEDIUM)


@dataclass(frozen=True)
class SlippageRecommendation:
    recommended_slippage: Decimal
    severity: Severity
    reason: str
    user_overridden: bool = False


@dataclass(frozen=True)
class SlippageCheck:
    sufficient: bool
    recommended_slippage: Decimal
    message: str


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return min(high, max(low, value))


def _pct(value: Decimal) -> str:
    return f"{value.quantize(_CENT, rounding=ROUND_HALF_UP)}%"


def calculate_auto_slippage(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    user_slippage: Decimal | int | str | None = None,
) -> SlippageRecommendation:
    """Recommend a slippage tolerance for a trade.

    Args:
        amount_in: Input amount in base units
        reserve_in: Pool reserve of the input token
        reserve_out: Pool reserve of the output token
        user_slippage: Tolerance chosen by the user, in percent. Honored when
                       it exceeds the recommendation.

    Returns:
        SlippageRecommendation with the tolerance rounded to 2 decimals

    Raises:
        InsufficientInputAmount: If amount_in is negative
    """
    if amount_in < 0:
        raise InsufficientInputAmount(f"Amount in cannot be negative: {amount_in}")

    if reserve_in <= 0 or reserve_out <= 0:
        return SlippageRecommendation(EMPTY_POOL_SLIPPAGE, Severity.CRITICAL, "Pool has no liquidity")

    trade_size = Decimal(amount_in) * _HUNDRED / Decimal(reserve_in)
    if amount_in > 0:
        amount_out = get_amount_out(amount_in, reserve_in, reserve_out)
        impact = calculate_price_impact(amount_in, amount_out, reserve_in, reserve_out)
    else:
        impact = Decimal(0)
    signal = max(trade_size, impact)

    if signal > CRITICAL_THRESHOLD:
        recommended = _clamp(impact * Decimal("1.5"), Decimal(5), Decimal(10))
        severity = Severity.CRITICAL
        reason = f"Large trade ({_pct(trade_size)} of pool). Price impact: {_pct(impact)}"
    elif signal > HIGH_THRESHOLD:
        recommended = _clamp(impact * Decimal("1.3"), Decimal(3), Decimal(5))
        severity = Severity.HIGH
        reason = f"Significant trade size. Price impact: {_pct(impact)}"
    elif signal > MEDIUM_THRESHOLD:
        recommended = _clamp(impact * Decimal("1.2"), Decimal(1), Decimal(3))
        severity = Severity.MEDIUM
        reason = f"Moderate price impact: {_pct(impact)}"
    elif signal > LOW_THRESHOLD:
        recommended = LOW_SLIPPAGE
        severity = Severity.LOW
        reason = f"Low price impact: {_pct(impact)}"
    else:
        recommended = MINIMAL_SLIPPAGE
        severity = Severity.LOW
        reason = "Minimal price impact"

    recommended = recommended.quantize(_CENT, rounding=ROUND_HALF_UP)

    if user_slippage is not None:
        user = Decimal(str(user_slippage))
        if user > recommended:
            return SlippageRecommendation(
                recommended_slippage=user,
                severity=severity,
                reason=f"User slippage ({user}%) applied. {reason}",
                user_overridden=True,
            )

    return SlippageRecommendation(recommended, severity, reason)


def is_slippage_sufficient(
    current_slippage: Decimal | int | str,
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
) -> SlippageCheck:
    """Check a chosen tolerance against the recommendation.

    A tolerance below the recommendation is still sufficient for low and
    medium severity trades; the recommendation is reported either way.
    """
    current = Decimal(str(current_slippage))
    recommendation = calculate_auto_slippage(amount_in, reserve_in, reserve_out)

    if current >= recommendation.recommended_slippage:
        return SlippageCheck(True, current, "Slippage is sufficient")

    return SlippageCheck(
        sufficient=recommendation.severity.tolerable,
        recommended_slippage=recommendation.recommended_slippage,
        message=f"Recommended slippage: {recommendation.recommended_slippage}%. {recommendation.reason}",
    )


__all__ = [
    "Severity",
    "SlippageRecommendation",
    "SlippageCheck",
    "calculate_auto_slippage",
    "is_slippage_sufficient",
]
