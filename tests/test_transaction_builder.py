from dataclasses import dataclass
from decimal import Decimal

import pytest

from chain.client import GasPrice
from chain.transaction_builder import TransactionBuilder
from core.base_types import Address, TokenAmount

DEAD = "0x000000000000000000000000000000000000dead"


@dataclass
class _Signed:
    raw_transaction: bytes


class _FakeWallet:
    def __init__(self, address: str):
        self.address = address
        self.signed = []

    def sign_transaction(self, tx: dict):
        self.signed.append(tx)
        return _Signed(b"\x01\x02")


class _FakeClient:
    def __init__(self, gas=21000):
        self._nonce = 7
        self._gas = gas
        self.estimated = []

    def estimate_gas(self, tx):
        self.estimated.append(tx)
        return self._gas

    def get_gas_price(self):
        return GasPrice(
            base_fee=5, priority_fee_low=1, priority_fee_medium=2, priority_fee_high=3
        )

    def get_nonce(self, address):
        return self._nonce

    def send_transaction(self, signed_tx):
        return "0x123"


def _builder(client=None, wallet=None):
    return (
        TransactionBuilder(client or _FakeClient(), wallet or _FakeWallet(DEAD))
        .to(Address.from_string(DEAD))
        .value(TokenAmount.from_human("0.1", 18, "ETH"))
        .data(b"")
    )


def test_builder_requires_to_address():
    builder = TransactionBuilder(_FakeClient(), _FakeWallet(DEAD))
    with pytest.raises(ValueError, match="to address is required"):
        builder.build()


def test_builder_builds_and_sends():
    wallet = _FakeWallet(DEAD)
    tx_hash = _builder(wallet=wallet).with_gas_estimate().with_gas_price("medium").send()

    assert tx_hash == "0x123"
    signed = wallet.signed[0]
    assert signed["nonce"] == 7
    assert signed["maxPriorityFeePerGas"] == 2
    assert signed["maxFeePerGas"] == 8


def test_builder_gas_estimate_buffer():
    builder = _builder().with_gas_estimate(buffer=1.5)
    with pytest.raises(ValueError, match="max_fee_per_gas is required"):
        builder.build()

    tx = builder.with_gas_price("medium").build()
    assert tx.gas_limit == 31500


def test_gas_margin_is_exact_and_rounds_up():
    builder = _builder(_FakeClient(gas=100_000)).with_gas_estimate(Decimal("1.15"))
    assert builder.with_gas_price().build().gas_limit == 115_000

    builder = _builder(_FakeClient(gas=3)).with_gas_estimate(Decimal("1.15"))
    assert builder.with_gas_price().build().gas_limit == 4


def test_gas_estimate_is_made_from_sender():
    client = _FakeClient()
    _builder(client).with_gas_estimate()
    assert client.estimated[0].sender == Address.from_string(DEAD)


def test_buffer_below_one_rejected():
    with pytest.raises(ValueError):
        _builder().with_gas_estimate(buffer=0.9)


def test_max_cost_covers_value_and_gas():
    tx = _builder().with_gas_estimate(buffer=1).with_gas_price("medium").build()
    assert tx.max_cost_wei == 10**17 + 21000 * 8
