"""Round-trip route evaluation across a fixed buy/sell venue pair."""

from __future__ import annotations

import logging
from typing import Optional, Union

from core.base_types import Token
from core.results import FailureReason, Skipped
from core.units import to_human_string
from pricing.quote_source import QuoteSource, Venue

from .opportunity import Direction, Opportunity

logger = logging.getLogger(__name__)

Evaluation = Union[Opportunity, Skipped]


class RouteEvaluator:
    """
    Quotes ``amount_in`` of the quote asset into ``asset`` on the buy venue,
    then the intermediate amount back on the sell venue.

    The two directions of a venue pair are not inverses (fees and slippage
    differ), so callers evaluate each direction separately.
    """

    def __init__(self, quotes: QuoteSource, quote_asset: Token, verbose: bool = True):
        self._quotes = quotes
        self.quote_asset = quote_asset
        self._leg_level = logging.INFO if verbose else logging.DEBUG

    def evaluate(
        self,
        buy_venue: Venue,
        sell_venue: Venue,
        asset: Token,
        amount_in: int,
        direction: Direction = Direction.A_TO_B,
        block_number: Optional[int] = None,
    ) -> Evaluation:
        if amount_in == 0:
            return Skipped(FailureReason.ZERO_AMOUNT, "amount_in is zero")

        quote = self.quote_asset
        buy = self._quotes.quote(buy_venue, [quote, asset], amount_in)
        if not buy.is_ok:
            return Skipped(buy.reason, f"buy leg on {buy_venue}: {buy.detail}")
        intermediate = buy.amount_out
        if intermediate == 0:
            return Skipped(FailureReason.NO_LIQUIDITY, f"buy leg on {buy_venue} quoted zero")
        logger.log(
            self._leg_level,
            " Buy  @%s: %s %s -> %s %s",
            buy_venue,
            to_human_string(amount_in, quote.decimals),
            quote.symbol,
            to_human_string(intermediate, asset.decimals),
            asset.symbol,
        )

        sell = self._quotes.quote(sell_venue, [asset, quote], intermediate)
        if not sell.is_ok:
            return Skipped(sell.reason, f"sell leg on {sell_venue}: {sell.detail}")
        amount_out = sell.amount_out
        if amount_out == 0:
            return Skipped(FailureReason.NO_LIQUIDITY, f"sell leg on {sell_venue} quoted zero")
        logger.log(
            self._leg_level,
            " Sell @%s: %s %s -> %s %s",
            sell_venue,
            to_human_string(intermediate, asset.decimals),
            asset.symbol,
            to_human_string(amount_out, quote.decimals),
            quote.symbol,
        )

        return Opportunity.create(
            direction=direction,
            buy_venue=buy_venue,
            sell_venue=sell_venue,
            asset=asset,
            quote_asset=quote,
            amount_in=amount_in,
            intermediate_amount=intermediate,
            amount_out=amount_out,
            block_number=block_number,
        )
