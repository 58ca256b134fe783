"""Conversion between human decimal strings and integer base units.

Amounts that end up on-chain never pass through ``float``. Extra fractional
digits are truncated toward zero, never rounded up.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, localcontext

logger = logging.getLogger(__name__)

MAX_DECIMALS = 36
MAX_UINT256 = 2**256 - 1


class InvalidAmount(ValueError):
    """Amount cannot be parsed as a non-negative decimal."""


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise InvalidAmount("decimals must be an integer")
    if decimals < 0 or decimals > MAX_DECIMALS:
        raise InvalidAmount(f"decimals must be in [0, {MAX_DECIMALS}]")


def _parse(amount: str | Decimal) -> Decimal:
    if isinstance(amount, float):
        raise TypeError("amount must be a string or Decimal, not float")
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, str):
        text = amount.strip().replace("_", "")
        if text == "":
            raise InvalidAmount("amount must not be empty")
        try:
            value = Decimal(text)
        except InvalidOperation as exc:
            raise InvalidAmount(f"cannot parse amount {amount!r}") from exc
    else:
        raise TypeError("amount must be a string or Decimal")

    if not value.is_finite():
        raise InvalidAmount(f"amount must be finite, got {amount!r}")
    if value < 0:
        raise InvalidAmount(f"amount must be non-negative, got {amount!r}")
    return value


def to_base_units(amount: str | Decimal, decimals: int) -> int:
    """
    Convert a human amount (e.g. ``"1.5"``) to integer base units.

    Digits beyond ``decimals`` are dropped with a warning:
    ``to_base_units("1.23456", 2) == 123``.
    """
    _check_decimals(decimals)
    value = _parse(amount)
    if value and value.adjusted() + decimals > 77:
        raise InvalidAmount(f"amount {amount!r} does not fit in uint256")

    # Scale with enough precision that no digit of the input is lost.
    digits = len(value.as_tuple().digits)
    with localcontext() as ctx:
        ctx.prec = max(28, digits + decimals + 2)
        try:
            scaled = value.scaleb(decimals)
        except ArithmeticError as exc:
            raise InvalidAmount(f"cannot scale amount {amount!r}") from exc
        raw = int(scaled)  # int() truncates toward zero
        if raw > MAX_UINT256:
            raise InvalidAmount(f"amount {amount!r} does not fit in uint256")
        if scaled != raw:
            logger.warning(
                "amount %s has more than %d fractional digits, truncated to %s",
                amount,
                decimals,
                to_human_string(raw, decimals),
            )
    return raw


def to_human_string(raw: int, decimals: int) -> str:
    """
    Render base units as a plain decimal string.

    Trailing fractional zeros are stripped; no scientific notation.
    Negative values (signed profit) keep their sign.
    """
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise TypeError("raw must be an int")
    _check_decimals(decimals)

    sign = "-" if raw < 0 else ""
    digits = str(abs(raw))
    if decimals == 0:
        return f"{sign}{digits}"

    digits = digits.rjust(decimals + 1, "0")
    whole, frac = digits[:-decimals], digits[-decimals:].rstrip("0")
    if not frac:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac}"
