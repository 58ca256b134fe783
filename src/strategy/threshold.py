from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from core.base_types import Token
from core.units import to_base_units, to_human_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfitThreshold:
    """Minimum profit in quote-asset base units. Never below 1."""

    raw: int
    token: Token

    @classmethod
    def from_human(cls, amount: str | Decimal, token: Token) -> "ProfitThreshold":
        raw = to_base_units(amount, token.decimals)
        if raw < 1:
            logger.warning(
                "min profit %s %s is below one base unit, using %s",
                amount,
                token.symbol,
                to_human_string(1, token.decimals),
            )
            raw = 1
        return cls(raw=raw, token=token)

    def is_met(self, profit: int) -> bool:
        return profit >= self.raw

    def __str__(self) -> str:
        return f"{to_human_string(self.raw, self.token.decimals)} {self.token.symbol}"
