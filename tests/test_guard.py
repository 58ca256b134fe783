from dataclasses import dataclass

import pytest

from chain.client import GasPrice
from chain.errors import ChainError, ExecutionReverted, InsufficientFunds, TransactionFailed
from core.base_types import Address, Token, TokenAmount, TransactionReceipt
from core.results import ExecutionStatus, FailureReason
from executor.guard import ExecutionGuard, ExecutorState, GuardConfig, InFlightLock
from executor.settlement import SettlementContract
from pricing.quote_source import Venue
from strategy.opportunity import Direction, Opportunity

USDC = Token(Address("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"), "USDC", 6)
WETH = Token(Address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"), "WETH", 18)
VENUE_A = Venue("venue-a", Address("0x" + "a" * 40))
VENUE_B = Venue("venue-b", Address("0x" + "b" * 40))
SETTLEMENT = SettlementContract(Address("0x" + "5" * 40))
SENDER = "0x" + "1" * 40

# 100_000 gas * 1.15 margin, max fee 10 * 1.2 + 2
GAS_LIMIT = 115_000
MAX_COST = GAS_LIMIT * 14


@dataclass
class _Signed:
    raw_transaction: bytes


class _FakeWallet:
    address = SENDER

    def __init__(self):
        self.signed = []

    def sign_transaction(self, tx):
        self.signed.append(tx)
        return _Signed(b"\xbe\xef")


def _receipt(status=True):
    return TransactionReceipt(
        tx_hash="0xfeed",
        block_number=42,
        status=status,
        gas_used=90_000,
        effective_gas_price=12,
        logs=[],
    )


class _FakeClient:
    def __init__(self, balance=10**18):
        self.balance = balance
        self.estimate_error = None
        self.send_error = None
        self.receipt_error = None
        self.on_wait = None
        self.sent = []
        self.estimated = []

    def estimate_gas(self, tx):
        self.estimated.append(tx)
        if self.estimate_error is not None:
            raise self.estimate_error
        return 100_000

    def get_gas_price(self):
        return GasPrice(base_fee=10, priority_fee_low=1, priority_fee_medium=2, priority_fee_high=3)

    def get_nonce(self, address):
        return 3

    def get_balance(self, address):
        return TokenAmount(raw=self.balance, decimals=18, symbol="ETH")

    def send_transaction(self, raw):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(raw)
        return "0xfeed"

    def wait_for_receipt(self, tx_hash, timeout=120):
        if self.on_wait is not None:
            self.on_wait()
        if self.receipt_error is not None:
            raise self.receipt_error
        return _receipt()


def _opportunity():
    return Opportunity.create(
        direction=Direction.A_TO_B,
        buy_venue=VENUE_A,
        sell_venue=VENUE_B,
        asset=WETH,
        quote_asset=USDC,
        amount_in=100_000_000,
        intermediate_amount=10**16,
        amount_out=101_000_000,
    )


def _guard(client, wallet=None, lock=None):
    return ExecutionGuard(client, wallet or _FakeWallet(), SETTLEMENT, GuardConfig(), lock=lock)


def _execute(guard):
    return guard.try_execute(_opportunity(), VENUE_A, VENUE_B, WETH, 100_000_000)


def test_successful_execution_applies_gas_margin():
    client = _FakeClient()
    wallet = _FakeWallet()
    guard = _guard(client, wallet)

    result = _execute(guard)

    assert result.status is ExecutionStatus.SUBMITTED
    assert result.tx_hash == "0xfeed"
    assert result.block_number == 42
    assert wallet.signed[0]["gas"] == GAS_LIMIT
    assert wallet.signed[0]["maxFeePerGas"] == 14
    assert wallet.signed[0]["nonce"] == 3
    assert client.estimated[0].sender == Address(SENDER)
    assert guard.last_context.state is ExecutorState.CONFIRMED
    assert not guard.in_flight


def test_busy_when_lock_held_makes_no_calls():
    client = _FakeClient()
    lock = InFlightLock()
    assert lock.try_acquire()
    guard = _guard(client, lock=lock)

    result = _execute(guard)

    assert result.status is ExecutionStatus.BUSY
    assert client.estimated == []
    assert client.sent == []
    assert lock.in_flight
    lock.release()


def test_insufficient_balance_never_submits():
    client = _FakeClient(balance=MAX_COST - 1)
    guard = _guard(client)

    result = _execute(guard)

    assert result.status is ExecutionStatus.REJECTED
    assert result.reason is FailureReason.INSUFFICIENT_BALANCE
    assert client.sent == []
    assert not guard.in_flight


def test_exact_balance_is_enough():
    result = _execute(_guard(_FakeClient(balance=MAX_COST)))
    assert result.status is ExecutionStatus.SUBMITTED


def test_estimate_revert_is_reverted():
    client = _FakeClient()
    client.estimate_error = ExecutionReverted("execution reverted", code=3)
    guard = _guard(client)

    result = _execute(guard)

    assert result.reason is FailureReason.REVERTED
    assert client.sent == []
    assert guard.last_context.state is ExecutorState.FAILED
    assert not guard.in_flight


def test_estimate_transport_error():
    client = _FakeClient()
    client.estimate_error = ChainError("RPC request eth_estimateGas failed")

    result = _execute(_guard(client))

    assert result.reason is FailureReason.TRANSPORT_ERROR


def test_node_reported_insufficient_funds():
    client = _FakeClient()
    client.send_error = InsufficientFunds("insufficient funds for gas * price + value")

    result = _execute(_guard(client))

    assert result.reason is FailureReason.INSUFFICIENT_BALANCE


def test_submission_failure():
    client = _FakeClient()
    client.send_error = ChainError("RPC request eth_sendRawTransaction failed")
    guard = _guard(client)

    result = _execute(guard)

    assert result.reason is FailureReason.SUBMISSION_FAILED
    assert result.tx_hash is None
    assert not guard.in_flight


def test_reverted_receipt_keeps_hash():
    client = _FakeClient()
    client.receipt_error = TransactionFailed("0xfeed", _receipt(status=False))
    guard = _guard(client)

    result = _execute(guard)

    assert result.reason is FailureReason.REVERTED
    assert result.tx_hash == "0xfeed"
    assert not guard.in_flight


def test_receipt_timeout_releases_lock():
    client = _FakeClient()
    client.receipt_error = TimeoutError("Timed out waiting for receipt 0xfeed")
    guard = _guard(client)

    result = _execute(guard)

    assert result.reason is FailureReason.SUBMISSION_FAILED
    assert result.tx_hash == "0xfeed"
    assert not guard.in_flight


def test_unexpected_exception_is_rejected_and_releases_lock():
    client = _FakeClient()
    client.receipt_error = RuntimeError("bug")
    guard = _guard(client)

    result = _execute(guard)

    assert result.status is ExecutionStatus.REJECTED
    assert result.reason is FailureReason.SUBMISSION_FAILED
    assert result.tx_hash == "0xfeed"
    assert guard.last_context.state is ExecutorState.FAILED
    assert not guard.in_flight
    client.receipt_error = None
    assert _execute(guard).status is ExecutionStatus.SUBMITTED


class _BrokenWallet(_FakeWallet):
    def sign_transaction(self, tx):
        raise TypeError("cannot sign")


def test_signing_failure_never_submits():
    client = _FakeClient()
    guard = _guard(client, wallet=_BrokenWallet())

    result = _execute(guard)

    assert result.reason is FailureReason.SUBMISSION_FAILED
    assert result.tx_hash is None
    assert client.sent == []
    assert not guard.in_flight


def test_second_opportunity_is_busy_while_first_in_flight():
    client = _FakeClient()
    guard = _guard(client)
    nested = []
    client.on_wait = lambda: nested.append(_execute(guard))

    first = _execute(guard)

    assert first.status is ExecutionStatus.SUBMITTED
    assert [r.status for r in nested] == [ExecutionStatus.BUSY]
    assert len(client.sent) == 1
    assert not guard.in_flight


def test_lock_hold_releases_on_exception():
    lock = InFlightLock()
    with pytest.raises(ValueError):
        with lock.hold() as acquired:
            assert acquired
            assert lock.in_flight
            raise ValueError("boom")
    assert not lock.in_flight
