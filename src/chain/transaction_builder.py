"""Fluent transaction builder for estimating, signing and sending."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal

from eth_account.datastructures import SignedTransaction

from core.base_types import Address, TokenAmount, TransactionRequest
from core.wallet_manager import WalletManager

from .client import ChainClient

logger = logging.getLogger(__name__)


@dataclass
class _TxState:
    to: Address | None = None
    value: TokenAmount | None = None
    data: bytes | None = None
    nonce: int | None = None
    gas_limit: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee: int | None = None
    chain_id: int = 1


class TransactionBuilder:
    """
    Fluent builder for transactions.

    Usage:
        tx = (TransactionBuilder(client, wallet)
            .to(settlement)
            .data(calldata)
            .chain_id(1)
            .with_gas_estimate(buffer=1.15)
            .with_gas_price("medium")
            .build())
    """

    def __init__(self, client: ChainClient, wallet: WalletManager):
        self._client = client
        self._wallet = wallet
        self._state = _TxState()

    @property
    def sender(self) -> Address:
        return Address.from_string(self._wallet.address)

    def to(self, address: Address) -> "TransactionBuilder":
        self._state.to = address
        return self

    def value(self, amount: TokenAmount) -> "TransactionBuilder":
        self._state.value = amount
        return self

    def data(self, calldata: bytes) -> "TransactionBuilder":
        self._state.data = calldata
        return self

    def nonce(self, nonce: int) -> "TransactionBuilder":
        """Explicit nonce (for replacement or batch)."""
        self._state.nonce = nonce
        return self

    def gas_limit(self, limit: int) -> "TransactionBuilder":
        self._state.gas_limit = limit
        return self

    def chain_id(self, chain_id: int) -> "TransactionBuilder":
        """Set EVM chain id for signing."""
        if chain_id <= 0:
            raise ValueError("chain_id must be positive")
        self._state.chain_id = chain_id
        return self

    def with_gas_estimate(
        self, buffer: float | Decimal = Decimal("1.15")
    ) -> "TransactionBuilder":
        """Estimate gas from the sender and set the limit with a safety margin."""
        margin = Decimal(str(buffer))
        if margin < 1:
            raise ValueError("buffer must be >= 1")
        estimate = self._client.estimate_gas(self._call_request())
        limit = (Decimal(estimate) * margin).to_integral_value(rounding=ROUND_CEILING)
        self._state.gas_limit = int(limit)
        logger.debug("gas estimate %d, limit %d (x%s)", estimate, self._state.gas_limit, margin)
        return self

    def with_gas_price(self, priority: str = "medium") -> "TransactionBuilder":
        """Set EIP-1559 fees based on current network conditions."""
        gas = self._client.get_gas_price()
        self._state.max_priority_fee = gas.priority_fee(priority)
        self._state.max_fee_per_gas = gas.get_max_fee(priority)
        return self

    def build(self) -> TransactionRequest:
        """Validate and return a fully priced transaction request."""
        request = self._call_request()
        if request.gas_limit is None:
            raise ValueError("gas_limit is required (call with_gas_estimate)")
        if self._state.max_fee_per_gas is None:
            raise ValueError("max_fee_per_gas is required (call with_gas_price)")
        if self._state.max_priority_fee is None:
            raise ValueError("max_priority_fee is required (call with_gas_price)")

        if self._state.nonce is None:
            self._state.nonce = self._client.get_nonce(self.sender)
        request.nonce = self._state.nonce
        request.max_fee_per_gas = self._state.max_fee_per_gas
        request.max_priority_fee = self._state.max_priority_fee
        return request

    def sign(self, request: TransactionRequest) -> SignedTransaction:
        return self._wallet.sign_transaction(request.to_dict())

    def build_and_sign(self) -> SignedTransaction:
        """Build, sign, and return ready-to-send transaction."""
        return self.sign(self.build())

    def send(self) -> str:
        """Build, sign, send, return tx hash."""
        signed = self.build_and_sign()
        return self._client.send_transaction(signed.raw_transaction)

    def _call_request(self) -> TransactionRequest:
        if self._state.to is None:
            raise ValueError("to address is required")
        return TransactionRequest(
            to=self._state.to,
            value=self._state.value or TokenAmount(raw=0, decimals=18, symbol="ETH"),
            data=self._state.data or b"",
            sender=self.sender,
            gas_limit=self._state.gas_limit,
            chain_id=self._state.chain_id,
        )
