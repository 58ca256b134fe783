import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from core.base_types import Token
from core.units import to_human_string
from pricing.quote_source import Venue


class Direction(Enum):
    A_TO_B = "a_to_b"  # buy on venue A, sell on venue B
    B_TO_A = "b_to_a"  # buy on venue B, sell on venue A


@dataclass(frozen=True)
class Opportunity:
    """A round trip quote-asset -> asset -> quote-asset across two venues."""

    direction: Direction
    buy_venue: Venue
    sell_venue: Venue
    asset: Token
    quote_asset: Token

    amount_in: int
    intermediate_amount: int
    amount_out: int

    profit: int
    profit_percent: float  # display only
    block_number: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if self.profit != self.amount_out - self.amount_in:
            raise ValueError("profit must equal amount_out - amount_in")

    @classmethod
    def create(
        cls,
        direction: Direction,
        buy_venue: Venue,
        sell_venue: Venue,
        asset: Token,
        quote_asset: Token,
        amount_in: int,
        intermediate_amount: int,
        amount_out: int,
        block_number: Optional[int] = None,
    ) -> "Opportunity":
        if amount_in <= 0:
            raise ValueError("amount_in must be positive")
        profit = amount_out - amount_in
        decimals = quote_asset.decimals
        percent = (
            float(to_human_string(profit, decimals))
            / float(to_human_string(amount_in, decimals))
            * 100
        )
        return cls(
            direction=direction,
            buy_venue=buy_venue,
            sell_venue=sell_venue,
            asset=asset,
            quote_asset=quote_asset,
            amount_in=amount_in,
            intermediate_amount=intermediate_amount,
            amount_out=amount_out,
            profit=profit,
            profit_percent=percent,
            block_number=block_number,
        )

    @property
    def label(self) -> str:
        return f"buy@{self.buy_venue} sell@{self.sell_venue}"

    def describe(self) -> str:
        q, a = self.quote_asset, self.asset
        return (
            f"{self.label}: {to_human_string(self.amount_in, q.decimals)} {q.symbol}"
            f" -> {to_human_string(self.intermediate_amount, a.decimals)} {a.symbol}"
            f" -> {to_human_string(self.amount_out, q.decimals)} {q.symbol}"
            f" profit={to_human_string(self.profit, q.decimals)} {q.symbol}"
            f" ({self.profit_percent:+.4f}%)"
        )
