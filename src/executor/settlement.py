from __future__ import annotations

from dataclasses import dataclass

from chain.abi import argument_types, encode_call
from config import DEFAULT_SETTLEMENT_SIGNATURE
from core.base_types import Address, Token
from pricing.quote_source import Venue


@dataclass(frozen=True)
class SettlementContract:
    """
    External contract that performs buy + sell atomically and reverts when
    the output does not cover the input. Opaque to us beyond its calldata.
    """

    address: Address
    signature: str = DEFAULT_SETTLEMENT_SIGNATURE

    def __post_init__(self) -> None:
        if argument_types(self.signature) != ["address", "address", "address", "uint256"]:
            raise ValueError(
                f"settlement signature must take (address,address,address,uint256): "
                f"{self.signature}"
            )

    def calldata(
        self, buy_venue: Venue, sell_venue: Venue, asset: Token, amount_in: int
    ) -> bytes:
        return encode_call(
            self.signature,
            [
                buy_venue.router.checksum,
                sell_venue.router.checksum,
                asset.address.checksum,
                amount_in,
            ],
        )
