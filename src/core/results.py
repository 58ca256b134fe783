"""Tagged outcomes returned across remote-call boundaries.

Components never raise recoverable failures to their caller; they return one
of these values and the caller branches on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureReason(Enum):
    NO_LIQUIDITY = "no_liquidity"
    QUOTE_FAILED = "quote_failed"
    ZERO_AMOUNT = "zero_amount"
    SIMULATION_REJECTED = "simulation_rejected"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    SUBMISSION_FAILED = "submission_failed"
    REVERTED = "reverted"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class QuoteResult:
    """Output of a single venue quote: an amount or a failure reason."""

    amount_out: Optional[int] = None
    reason: Optional[FailureReason] = None
    detail: str = ""

    @classmethod
    def ok(cls, amount_out: int) -> "QuoteResult":
        return cls(amount_out=amount_out)

    @classmethod
    def failed(cls, reason: FailureReason, detail: str = "") -> "QuoteResult":
        return cls(reason=reason, detail=detail)

    @property
    def is_ok(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class Skipped:
    """Route evaluation that produced no opportunity."""

    reason: FailureReason
    detail: str = ""


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a dry-run of the settlement call."""

    reason: Optional[FailureReason] = None
    detail: str = ""

    @classmethod
    def ok(cls) -> "SimulationResult":
        return cls()

    @classmethod
    def rejected(cls, detail: str = "") -> "SimulationResult":
        return cls(reason=FailureReason.SIMULATION_REJECTED, detail=detail)

    @property
    def is_ok(self) -> bool:
        return self.reason is None


class ExecutionStatus(Enum):
    SUBMITTED = "submitted"
    REJECTED = "rejected"
    BUSY = "busy"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one execution attempt."""

    status: ExecutionStatus
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    reason: Optional[FailureReason] = None
    detail: str = ""

    @classmethod
    def submitted(cls, tx_hash: str, block_number: int) -> "ExecutionResult":
        return cls(ExecutionStatus.SUBMITTED, tx_hash=tx_hash, block_number=block_number)

    @classmethod
    def rejected(
        cls,
        reason: FailureReason,
        detail: str = "",
        tx_hash: Optional[str] = None,
    ) -> "ExecutionResult":
        return cls(ExecutionStatus.REJECTED, tx_hash=tx_hash, reason=reason, detail=detail)

    @classmethod
    def busy(cls) -> "ExecutionResult":
        return cls(ExecutionStatus.BUSY)
