"""Core type definitions shared by the chain, pricing and executor modules."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from eth_utils.address import is_address, to_checksum_address

from .units import MAX_DECIMALS, to_base_units, to_human_string


@dataclass(frozen=True)
class Address:
    """Ethereum address with validation and checksumming."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("Address value must be a string")
        if not is_address(self.value):
            raise ValueError(f"Invalid Ethereum address: {self.value!r}")
        object.__setattr__(self, "value", to_checksum_address(self.value))

    @classmethod
    def from_string(cls, s: str) -> "Address":
        return cls(s)

    @property
    def checksum(self) -> str:
        return self.value

    @property
    def lower(self) -> str:
        return self.value.lower()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.lower == other.lower
        if isinstance(other, str):
            return self.lower == other.lower()
        return False

    def __hash__(self) -> int:
        return hash(self.lower)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    """An ERC-20 asset with its resolved decimal precision."""

    address: Address
    symbol: str
    decimals: int

    def __post_init__(self) -> None:
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int):
            raise TypeError("decimals must be an int")
        if self.decimals < 0 or self.decimals > MAX_DECIMALS:
            raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}]")

    def amount(self, raw: int) -> "TokenAmount":
        return TokenAmount(raw=raw, decimals=self.decimals, symbol=self.symbol)

    def parse(self, human: str | Decimal) -> "TokenAmount":
        return TokenAmount.from_human(human, self.decimals, self.symbol)


@dataclass(frozen=True)
class TokenAmount:
    """
    Represents a token amount with proper decimal handling.

    Internally stores raw integer (wei-equivalent). Raw may be negative
    when the amount is a signed delta such as profit.
    """

    raw: int
    decimals: int
    symbol: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.raw, bool) or not isinstance(self.raw, int):
            raise TypeError("raw must be an int")
        if not isinstance(self.decimals, int) or self.decimals < 0:
            raise ValueError("decimals must be a non-negative integer")

    @classmethod
    def from_human(
        cls, amount: str | Decimal, decimals: int, symbol: str | None = None
    ) -> "TokenAmount":
        """Create from human-readable amount (e.g., '1.5' ETH), truncating."""
        return cls(raw=to_base_units(amount, decimals), decimals=decimals, symbol=symbol)

    @property
    def human(self) -> Decimal:
        """Returns human-readable decimal."""
        return Decimal(to_human_string(self.raw, self.decimals))

    def __add__(self, other: "TokenAmount") -> "TokenAmount":
        if not isinstance(other, TokenAmount):
            return NotImplemented
        if self.decimals != other.decimals:
            raise ValueError("TokenAmount decimals must match")
        return TokenAmount(self.raw + other.raw, self.decimals, self.symbol or other.symbol)

    def __sub__(self, other: "TokenAmount") -> "TokenAmount":
        if not isinstance(other, TokenAmount):
            return NotImplemented
        if self.decimals != other.decimals:
            raise ValueError("TokenAmount decimals must match")
        return TokenAmount(self.raw - other.raw, self.decimals, self.symbol or other.symbol)

    def __str__(self) -> str:
        return f"{to_human_string(self.raw, self.decimals)} {self.symbol or ''}".strip()


@dataclass
class TransactionRequest:
    """A transaction ready to be estimated, simulated or signed."""

    to: Address
    value: TokenAmount
    data: bytes
    sender: Optional[Address] = None
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee: Optional[int] = None
    chain_id: int = 1

    def to_dict(self) -> dict:
        """Convert to web3-compatible dict."""
        payload: dict[str, object] = {
            "to": self.to.checksum,
            "value": self.value.raw,
            "data": f"0x{self.data.hex()}",
            "chainId": self.chain_id,
        }
        if self.nonce is not None:
            payload["nonce"] = self.nonce
        if self.gas_limit is not None:
            payload["gas"] = self.gas_limit
        if self.max_fee_per_gas is not None:
            payload["maxFeePerGas"] = self.max_fee_per_gas
        if self.max_priority_fee is not None:
            payload["maxPriorityFeePerGas"] = self.max_priority_fee
        return payload

    def to_rpc_dict(self) -> dict:
        """Hex-encoded call object for eth_call / eth_estimateGas."""
        payload: dict[str, object] = {
            "to": self.to.checksum,
            "data": f"0x{self.data.hex()}",
        }
        if self.value.raw:
            payload["value"] = hex(self.value.raw)
        if self.sender is not None:
            payload["from"] = self.sender.checksum
        if self.gas_limit:
            payload["gas"] = hex(self.gas_limit)
        return payload

    @property
    def max_cost_wei(self) -> int:
        """Worst-case native spend: value plus gas_limit * max_fee_per_gas."""
        if self.gas_limit is None or self.max_fee_per_gas is None:
            raise ValueError("gas_limit and max_fee_per_gas are required")
        return self.value.raw + self.gas_limit * self.max_fee_per_gas


@dataclass
class TransactionReceipt:
    """Parsed transaction receipt."""

    tx_hash: str
    block_number: int
    status: bool
    gas_used: int
    effective_gas_price: int
    logs: list

    @property
    def tx_fee(self) -> TokenAmount:
        """Returns transaction fee as TokenAmount."""
        return TokenAmount(
            raw=self.gas_used * self.effective_gas_price,
            decimals=18,
            symbol="ETH",
        )

    @classmethod
    def from_web3(cls, receipt: dict) -> "TransactionReceipt":
        """Parse from a JSON-RPC or web3 receipt dict."""
        tx_hash = receipt.get("transactionHash")
        if hasattr(tx_hash, "hex"):
            tx_hash_value = tx_hash.hex()
        else:
            tx_hash_value = str(tx_hash)

        status_value = receipt.get("status")
        if isinstance(status_value, bool):
            status = status_value
        elif isinstance(status_value, int):
            status = status_value == 1
        elif isinstance(status_value, str):
            status = _to_int(status_value) == 1
        else:
            raise ValueError("Invalid status in receipt")

        return cls(
            tx_hash=tx_hash_value,
            block_number=_to_int(receipt.get("blockNumber")),
            status=status,
            gas_used=_to_int(receipt.get("gasUsed")),
            effective_gas_price=_to_int(receipt.get("effectiveGasPrice", 0)),
            logs=receipt.get("logs", []),
        )


def _to_int(value: object) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    raise ValueError("Expected integer-like value")
