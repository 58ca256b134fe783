"""Router quotes via getAmountsOut, with failure as an ordinary result."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from eth_abi.exceptions import DecodingError

from chain.abi import decode_uint_array, encode_call
from chain.client import ChainClient
from chain.errors import ChainError, ExecutionReverted
from core.base_types import Address, Token, TokenAmount, TransactionRequest
from core.results import FailureReason, QuoteResult

logger = logging.getLogger(__name__)

GET_AMOUNTS_OUT = "getAmountsOut(uint256,address[])"


@dataclass(frozen=True)
class Venue:
    """A DEX router. ``direct_only`` venues cannot quote multi-hop paths."""

    name: str
    router: Address
    direct_only: bool = False

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class QuoteRequest:
    venue: Venue
    path: tuple[Token, ...]
    amount_in: int


class QuoteSource:
    """
    Read-only quoting against Uniswap-V2-style routers.

    ``quote`` never raises for remote failures: reverts (no pair), transport
    errors, short or zero-valued responses all come back as
    ``QuoteResult.failed``.
    """

    def __init__(self, client: ChainClient):
        self._client = client

    def quote(self, venue: Venue, path: Sequence[Token], amount_in: int) -> QuoteResult:
        request = QuoteRequest(venue=venue, path=tuple(path), amount_in=amount_in)
        return self.quote_request(request)

    def quote_request(self, request: QuoteRequest) -> QuoteResult:
        venue, path, amount_in = request.venue, request.path, request.amount_in
        if len(path) < 2:
            return QuoteResult.failed(FailureReason.QUOTE_FAILED, "path needs at least 2 tokens")
        if amount_in < 0:
            return QuoteResult.failed(FailureReason.QUOTE_FAILED, "negative amount_in")
        if venue.direct_only and len(path) > 2:
            return QuoteResult.failed(
                FailureReason.NO_LIQUIDITY, f"{venue} only supports direct paths"
            )

        call = TransactionRequest(
            to=venue.router,
            value=TokenAmount(raw=0, decimals=18, symbol="ETH"),
            data=encode_call(
                GET_AMOUNTS_OUT, [amount_in, [token.address.checksum for token in path]]
            ),
        )
        label = "->".join(token.symbol for token in path)
        try:
            raw = self._client.call(call)
        except ExecutionReverted as exc:
            logger.debug("quote %s on %s reverted: %s", label, venue, exc.reason)
            return QuoteResult.failed(FailureReason.NO_LIQUIDITY, exc.reason)
        except ChainError as exc:
            logger.warning("quote %s on %s failed: %s", label, venue, exc)
            return QuoteResult.failed(FailureReason.TRANSPORT_ERROR, str(exc))

        try:
            amounts = decode_uint_array(raw)
        except (DecodingError, ValueError) as exc:
            return QuoteResult.failed(FailureReason.QUOTE_FAILED, f"malformed response: {exc}")

        if len(amounts) < len(path):
            return QuoteResult.failed(
                FailureReason.QUOTE_FAILED,
                f"expected {len(path)} amounts, got {len(amounts)}",
            )
        amount_out = amounts[-1]
        if amount_out == 0:
            return QuoteResult.failed(FailureReason.NO_LIQUIDITY, "zero output")
        return QuoteResult.ok(amount_out)
