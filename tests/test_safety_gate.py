import pytest
from eth_abi import decode, encode

from chain.errors import ChainError, ExecutionReverted
from core.base_types import Address, Token
from core.results import FailureReason
from executor.safety_gate import SafetyGate
from executor.settlement import SettlementContract
from pricing.quote_source import Venue
from strategy.opportunity import Direction, Opportunity

USDC = Token(Address("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"), "USDC", 6)
WETH = Token(Address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"), "WETH", 18)
VENUE_A = Venue("venue-a", Address("0x" + "a" * 40))
VENUE_B = Venue("venue-b", Address("0x" + "b" * 40))
SETTLEMENT = SettlementContract(Address("0x" + "5" * 40))
SENDER = Address("0x" + "1" * 40)


class _FakeClient:
    def __init__(self, error=None):
        self._error = error
        self.calls = []

    def call(self, tx, block="latest"):
        self.calls.append(tx)
        if self._error is not None:
            raise self._error
        return b""


def _opportunity():
    return Opportunity.create(
        direction=Direction.A_TO_B,
        buy_venue=VENUE_A,
        sell_venue=VENUE_B,
        asset=WETH,
        quote_asset=USDC,
        amount_in=100,
        intermediate_amount=105,
        amount_out=110,
    )


def _simulate(client):
    gate = SafetyGate(client, SETTLEMENT, sender=SENDER)
    return gate.simulate(_opportunity(), VENUE_A, VENUE_B, WETH, 100)


def test_simulation_success():
    client = _FakeClient()

    result = _simulate(client)

    assert result.is_ok
    tx = client.calls[0]
    assert tx.to == SETTLEMENT.address
    assert tx.sender == SENDER
    buy, sell, asset, amount = decode(
        ["address", "address", "address", "uint256"], tx.data[4:]
    )
    assert (buy.lower(), sell.lower(), asset.lower(), amount) == (
        VENUE_A.router.lower,
        VENUE_B.router.lower,
        WETH.address.lower,
        100,
    )


def test_revert_rejects_with_reason():
    data = "0x08c379a0" + encode(["string"], ["NOT_PROFITABLE"]).hex()
    client = _FakeClient(ExecutionReverted("execution reverted", code=3, data=data))

    result = _simulate(client)

    assert not result.is_ok
    assert result.reason is FailureReason.SIMULATION_REJECTED
    assert result.detail == "NOT_PROFITABLE"


def test_transport_failure_also_rejects():
    result = _simulate(_FakeClient(ChainError("RPC request eth_call failed")))

    assert result.reason is FailureReason.SIMULATION_REJECTED


def test_settlement_signature_must_match_argument_shape():
    with pytest.raises(ValueError, match="settlement signature"):
        SettlementContract(Address("0x" + "5" * 40), signature="swap(uint256)")


def test_settlement_calldata_uses_selector():
    custom = SettlementContract(
        Address("0x" + "5" * 40), signature="arb(address,address,address,uint256)"
    )
    assert custom.calldata(VENUE_A, VENUE_B, WETH, 1)[:4] != SETTLEMENT.calldata(
        VENUE_A, VENUE_B, WETH, 1
    )[:4]
