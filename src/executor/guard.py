"""Single-flight execution of settlement transactions."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, auto
from typing import Iterator, Optional

from chain import (
    ChainClient,
    ChainError,
    ExecutionReverted,
    InsufficientFunds,
    TransactionBuilder,
    TransactionFailed,
)
from core.base_types import Token
from core.results import ExecutionResult, FailureReason
from core.units import to_human_string
from core.wallet_manager import WalletManager
from pricing.quote_source import Venue
from strategy.opportunity import Opportunity

from .settlement import SettlementContract

logger = logging.getLogger(__name__)


class InFlightLock:
    """
    Exclusive in-flight flag. Acquisition never blocks: a caller that finds
    it held is told so and moves on.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Yields whether the lock was acquired; releases it on exit if so."""
        acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()


class ExecutorState(Enum):
    IDLE = auto()
    ESTIMATING = auto()
    SUBMITTING = auto()
    AWAITING_CONFIRMATION = auto()
    CONFIRMED = auto()
    FAILED = auto()


@dataclass
class ExecutionContext:
    opportunity: Opportunity
    state: ExecutorState = ExecutorState.IDLE

    gas_limit: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None

    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    error: Optional[str] = None


@dataclass
class GuardConfig:
    gas_margin: Decimal = Decimal("1.15")
    gas_priority: str = "medium"
    receipt_timeout: int = 120
    chain_id: int = 1


class ExecutionGuard:
    """
    Estimate -> balance check -> submit -> await receipt, one at a time.

    The lock is held from estimation until the receipt (or a definitive
    failure) and released on every exit path. Overlapping attempts get
    ``busy`` rather than queuing behind a stale opportunity.
    """

    def __init__(
        self,
        client: ChainClient,
        wallet: WalletManager,
        settlement: SettlementContract,
        config: Optional[GuardConfig] = None,
        lock: Optional[InFlightLock] = None,
    ):
        self._client = client
        self._wallet = wallet
        self._settlement = settlement
        self.config = config or GuardConfig()
        self.lock = lock or InFlightLock()
        self.last_context: Optional[ExecutionContext] = None

    @property
    def in_flight(self) -> bool:
        return self.lock.in_flight

    def try_execute(
        self,
        opportunity: Opportunity,
        buy_venue: Venue,
        sell_venue: Venue,
        asset: Token,
        amount_in: int,
    ) -> ExecutionResult:
        with self.lock.hold() as acquired:
            if not acquired:
                logger.info("execution busy, dropping %s", opportunity.label)
                return ExecutionResult.busy()

            ctx = ExecutionContext(opportunity=opportunity)
            self.last_context = ctx
            try:
                result = self._execute(ctx, buy_venue, sell_venue, asset, amount_in)
            except Exception as exc:
                logger.exception("execution of %s failed unexpectedly", opportunity.label)
                result = ExecutionResult.rejected(
                    FailureReason.SUBMISSION_FAILED, str(exc), tx_hash=ctx.tx_hash
                )
            finally:
                ctx.finished_at = time.time()
            ctx.state = (
                ExecutorState.CONFIRMED
                if result.reason is None
                else ExecutorState.FAILED
            )
            ctx.error = result.detail or None
            return result

    def _execute(
        self,
        ctx: ExecutionContext,
        buy_venue: Venue,
        sell_venue: Venue,
        asset: Token,
        amount_in: int,
    ) -> ExecutionResult:
        cfg = self.config

        ctx.state = ExecutorState.ESTIMATING
        builder = (
            TransactionBuilder(self._client, self._wallet)
            .to(self._settlement.address)
            .data(self._settlement.calldata(buy_venue, sell_venue, asset, amount_in))
            .chain_id(cfg.chain_id)
        )
        try:
            builder.with_gas_estimate(buffer=cfg.gas_margin)
            builder.with_gas_price(cfg.gas_priority)
            request = builder.build()
            balance = self._client.get_balance(builder.sender)
        except ExecutionReverted as exc:
            logger.warning("gas estimate reverted: %s", exc.reason)
            return ExecutionResult.rejected(FailureReason.REVERTED, exc.reason)
        except ChainError as exc:
            logger.warning("pre-submission check failed: %s", exc)
            return ExecutionResult.rejected(FailureReason.TRANSPORT_ERROR, str(exc))

        ctx.gas_limit = request.gas_limit
        ctx.max_fee_per_gas = request.max_fee_per_gas
        max_cost = request.max_cost_wei
        if balance.raw < max_cost:
            logger.error(
                "INSUFFICIENT BALANCE: %s holds %s ETH, worst-case cost %s ETH",
                builder.sender,
                to_human_string(balance.raw, 18),
                to_human_string(max_cost, 18),
            )
            return ExecutionResult.rejected(
                FailureReason.INSUFFICIENT_BALANCE,
                f"balance {balance.raw} < max cost {max_cost}",
            )

        ctx.state = ExecutorState.SUBMITTING
        try:
            signed = builder.sign(request)
            tx_hash = self._client.send_transaction(signed.raw_transaction)
        except InsufficientFunds as exc:
            logger.error("INSUFFICIENT BALANCE reported by node: %s", exc)
            return ExecutionResult.rejected(FailureReason.INSUFFICIENT_BALANCE, str(exc))
        except ChainError as exc:
            logger.error("submission failed: %s", exc)
            return ExecutionResult.rejected(FailureReason.SUBMISSION_FAILED, str(exc))

        ctx.tx_hash = tx_hash
        ctx.state = ExecutorState.AWAITING_CONFIRMATION
        logger.info(
            "Transaction sent: %s (gas limit %d, max fee %d wei)",
            tx_hash,
            request.gas_limit,
            request.max_fee_per_gas,
        )
        try:
            receipt = self._client.wait_for_receipt(tx_hash, timeout=cfg.receipt_timeout)
        except TransactionFailed as exc:
            logger.error("Transaction %s reverted in block %d", tx_hash, exc.receipt.block_number)
            return ExecutionResult.rejected(FailureReason.REVERTED, str(exc), tx_hash=tx_hash)
        except TimeoutError as exc:
            logger.error("No receipt for %s within %ds", tx_hash, cfg.receipt_timeout)
            return ExecutionResult.rejected(
                FailureReason.SUBMISSION_FAILED, str(exc), tx_hash=tx_hash
            )
        except ChainError as exc:
            logger.error("Lost track of %s while awaiting receipt: %s", tx_hash, exc)
            return ExecutionResult.rejected(
                FailureReason.TRANSPORT_ERROR, str(exc), tx_hash=tx_hash
            )

        ctx.block_number = receipt.block_number
        logger.info("Transaction confirmed in block %d", receipt.block_number)
        return ExecutionResult.submitted(tx_hash, receipt.block_number)
