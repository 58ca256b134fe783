"""Known-asset table and one-time decimals resolution."""

from __future__ import annotations

import logging
from typing import Optional

from eth_abi.exceptions import DecodingError

from chain.abi import decode_uint, encode_call
from chain.client import ChainClient
from chain.errors import ChainError
from config import ConfigurationError
from core.base_types import Address, Token, TokenAmount, TransactionRequest
from core.units import MAX_DECIMALS

logger = logging.getLogger(__name__)

# Ethereum mainnet
KNOWN_TOKENS: dict[str, Token] = {
    token.symbol: token
    for token in (
        Token(Address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"), "WETH", 18),
        Token(Address("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"), "USDC", 6),
        Token(Address("0xdac17f958d2ee523a2206206994597c13d831ec7"), "USDT", 6),
        Token(Address("0x6b175474e89094c44da98b954eedeac495271d0f"), "DAI", 18),
        Token(Address("0x2260fac5e5542a773aa44fbcfedf7c193bc2c599"), "WBTC", 8),
    )
}


class TokenRegistry:
    """
    Resolves asset symbols to :class:`Token` descriptors.

    Table entries are static. An address override that is not in the table
    gets its precision from ``decimals()`` on-chain, once per process.
    """

    def __init__(
        self,
        client: Optional[ChainClient] = None,
        known: Optional[dict[str, Token]] = None,
    ):
        self._client = client
        self._known = dict(KNOWN_TOKENS if known is None else known)
        self._decimals_cache: dict[Address, int] = {}

    def resolve(self, symbol: str, address: Optional[str] = None) -> Token:
        key = symbol.upper()
        if address is None:
            token = self._known.get(key)
            if token is None:
                raise ConfigurationError(f"Unknown asset {symbol!r} and no address given")
            return token

        try:
            addr = Address.from_string(address)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid address for {symbol}: {address!r}") from exc

        for token in self._known.values():
            if token.address == addr:
                return token
        return Token(addr, key, self._fetch_decimals(addr))

    def _fetch_decimals(self, address: Address) -> int:
        cached = self._decimals_cache.get(address)
        if cached is not None:
            return cached
        if self._client is None:
            raise ConfigurationError(f"Cannot resolve decimals for {address} without a client")

        request = TransactionRequest(
            to=address,
            value=TokenAmount(raw=0, decimals=18, symbol="ETH"),
            data=encode_call("decimals()", []),
        )
        try:
            decimals = decode_uint(self._client.call(request))
        except (ChainError, DecodingError) as exc:
            raise ConfigurationError(f"Failed to read decimals() of {address}") from exc
        if decimals > MAX_DECIMALS:
            raise ConfigurationError(f"{address} reports unsupported decimals={decimals}")

        logger.info("resolved %s decimals=%d", address, decimals)
        self._decimals_cache[address] = decimals
        return decimals
