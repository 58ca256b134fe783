from .guard import (
    ExecutionContext,
    ExecutionGuard,
    ExecutorState,
    GuardConfig,
    InFlightLock,
)
from .safety_gate import SafetyGate
from .settlement import SettlementContract

__all__ = [
    "ExecutionGuard",
    "GuardConfig",
    "ExecutorState",
    "ExecutionContext",
    "InFlightLock",
    "SafetyGate",
    "SettlementContract",
]
