from .client import ChainClient, GasPrice
from .errors import (
    ChainError,
    ExecutionReverted,
    InsufficientFunds,
    NonceTooLow,
    ReplacementUnderpriced,
    RPCError,
    TransactionFailed,
)
from .transaction_builder import TransactionBuilder

__all__ = [
    "ChainClient",
    "GasPrice",
    "TransactionBuilder",
    "ChainError",
    "RPCError",
    "ExecutionReverted",
    "TransactionFailed",
    "InsufficientFunds",
    "NonceTooLow",
    "ReplacementUnderpriced",
]
