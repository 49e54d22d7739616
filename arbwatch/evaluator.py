# arbwatch/evaluator.py
"""
Opportunity Evaluator
Turns two raw router quotes into a buy/sell direction and a gas-adjusted profit.

Direction, spread and gas are computed on raw integers; the conversion to
human USDC happens last, with Decimal, so near-equal quotes never flip.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from arbwatch.dex.routers import Venue
from arbwatch.pairs import USDC_SCALE
from arbwatch.storage import ArbitrageOpportunity, utc_timestamp

# Quotes below 1 USDC (raw, 6 decimals) are treated as unusable
SANITY_FLOOR = 1_000_000


class Outcome(Enum):
    INVALID = "invalid"
    NO_SPREAD = "no_spread"
    BELOW_THRESHOLD = "below_threshold"
    OPPORTUNITY = "opportunity"


@dataclass(frozen=True)
class Evaluation:
    """Evaluator output for one tick"""
    outcome: Outcome
    reason: str
    buy_dex: Optional[str] = None
    sell_dex: Optional[str] = None
    diff_raw: int = 0
    gas_raw: int = 0
    profit_raw: int = 0
    profit_usdc: Decimal = Decimal(0)
    opportunity: Optional[ArbitrageOpportunity] = None

    @property
    def is_opportunity(self) -> bool:
        return self.outcome is Outcome.OPPORTUNITY


def to_raw(amount: Decimal, scale: int = USDC_SCALE) -> int:
    """Human amount to raw units, truncating toward zero"""
    return int(Decimal(amount) * scale)


def evaluate(
    quote_a: int,
    quote_b: int,
    *,
    venue_a: Venue,
    venue_b: Venue,
    gas_cost_usdc: Decimal,
    min_profit_threshold: Decimal,
    scale: int = USDC_SCALE,
    sanity_floor: int = SANITY_FLOOR,
    now: Optional[datetime] = None,
) -> Evaluation:
    """
    Compare two venues' quotes for the same swap.

    The venue with the higher quote pays more quote token for the base token,
    so it is the sell side; the lower quote is the buy side.
    """
    if venue_a == venue_b:
        raise ValueError("venue_a and venue_b must differ")

    # 1. Validity gate
    if quote_a < sanity_floor or quote_b < sanity_floor:
        return Evaluation(
            outcome=Outcome.INVALID,
            reason=f"invalid price ({venue_a.value}={quote_a}, {venue_b.value}={quote_b}, floor={sanity_floor})",
        )

    # 2. Direction (raw integers)
    if quote_a > quote_b:
        buy, sell = venue_b, venue_a
    elif quote_a < quote_b:
        buy, sell = venue_a, venue_b
    else:
        return Evaluation(
            outcome=Outcome.NO_SPREAD,
            reason=f"both quotes equal ({quote_a}), no arbitrage",
        )

    # 3. Gas-adjusted profit
    diff = abs(quote_a - quote_b)
    gas_raw = to_raw(gas_cost_usdc, scale)
    profit_raw = diff - gas_raw if diff > gas_raw else 0

    # 4. Human-readable profit
    profit_usdc = Decimal(profit_raw) / Decimal(scale)

    # 5. Decision (strict)
    if profit_usdc > Decimal(min_profit_threshold):
        opportunity = ArbitrageOpportunity(
            buy_dex=buy.value,
            sell_dex=sell.value,
            profit_usdc=profit_usdc,
            timestamp=utc_timestamp(now),
        )
        return Evaluation(
            outcome=Outcome.OPPORTUNITY,
            reason=f"buy on {buy.value}, sell on {sell.value}, profit {profit_usdc} USDC",
            buy_dex=buy.value,
            sell_dex=sell.value,
            diff_raw=diff,
            gas_raw=gas_raw,
            profit_raw=profit_raw,
            profit_usdc=profit_usdc,
            opportunity=opportunity,
        )

    return Evaluation(
        outcome=Outcome.BELOW_THRESHOLD,
        reason=f"profit {profit_usdc} USDC <= threshold {min_profit_threshold} USDC",
        buy_dex=buy.value,
        sell_dex=sell.value,
        diff_raw=diff,
        gas_raw=gas_raw,
        profit_raw=profit_raw,
        profit_usdc=profit_usdc,
    )
