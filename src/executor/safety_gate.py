from __future__ import annotations

import logging
from typing import Optional

from chain.client import ChainClient
from chain.errors import ChainError, ExecutionReverted
from core.base_types import Address, Token, TokenAmount, TransactionRequest
from core.results import SimulationResult
from pricing.quote_source import Venue
from strategy.opportunity import Opportunity

from .settlement import SettlementContract

logger = logging.getLogger(__name__)


class SafetyGate:
    """
    Dry-runs the settlement call with ``eth_call`` before anything is sent.

    Quote-time and execution-time liquidity can differ, and the settlement
    contract enforces its own constraints, so a rejected simulation blocks
    execution no matter how large the quoted profit is.
    """

    def __init__(
        self,
        client: ChainClient,
        settlement: SettlementContract,
        sender: Optional[Address] = None,
        chain_id: int = 1,
    ):
        self._client = client
        self._settlement = settlement
        self._sender = sender
        self._chain_id = chain_id

    def simulate(
        self,
        opportunity: Opportunity,
        buy_venue: Venue,
        sell_venue: Venue,
        asset: Token,
        amount_in: int,
    ) -> SimulationResult:
        request = TransactionRequest(
            to=self._settlement.address,
            value=TokenAmount(raw=0, decimals=18, symbol="ETH"),
            data=self._settlement.calldata(buy_venue, sell_venue, asset, amount_in),
            sender=self._sender,
            chain_id=self._chain_id,
        )
        try:
            self._client.call(request)
        except ExecutionReverted as exc:
            logger.warning("simulation reverted for %s: %s", opportunity.label, exc.reason)
            return SimulationResult.rejected(exc.reason)
        except ChainError as exc:
            logger.warning("simulation failed for %s: %s", opportunity.label, exc)
            return SimulationResult.rejected(str(exc))
        return SimulationResult.ok()
