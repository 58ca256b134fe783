"""Chain-specific exceptions for RPC and transaction failures."""

from __future__ import annotations

from typing import Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from core.base_types import TransactionReceipt


class ChainError(Exception):
    """Base class for chain errors (transport failures included)."""


class RPCError(ChainError):
    """RPC request failed."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Optional[object] = None,
    ):
        self.code = code
        self.data = data
        super().__init__(message)


class ExecutionReverted(RPCError):
    """eth_call or eth_estimateGas hit a revert."""

    @property
    def reason(self) -> str:
        return _decode_revert_reason(self.data) or str(self)


class TransactionFailed(ChainError):
    """Transaction reverted."""

    def __init__(self, tx_hash: str, receipt: TransactionReceipt):
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(f"Transaction {tx_hash} reverted in block {receipt.block_number}")


class InsufficientFunds(ChainError):
    """Not enough balance for transaction."""


class NonceTooLow(ChainError):
    """Nonce already used."""


class ReplacementUnderpriced(ChainError):
    """Replacement transaction gas too low."""


# Error(string) selector
_ERROR_STRING_SELECTOR = "08c379a0"


def _decode_revert_reason(data: object) -> Optional[str]:
    if not isinstance(data, str):
        return None
    payload = data[2:] if data.startswith("0x") else data
    if not payload.startswith(_ERROR_STRING_SELECTOR):
        return None
    try:
        (reason,) = decode(["string"], bytes.fromhex(payload[8:]))
    except (DecodingError, ValueError):
        return None
    return str(reason)
