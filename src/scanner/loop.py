"""Fixed-cadence scanner driving evaluation, simulation and execution."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from chain.client import ChainClient
from chain.errors import ChainError
from core.base_types import Token
from core.results import ExecutionResult, ExecutionStatus, SimulationResult, Skipped
from executor.guard import ExecutionGuard
from executor.safety_gate import SafetyGate
from pricing.quote_source import Venue
from strategy.evaluator import Evaluation, RouteEvaluator
from strategy.opportunity import Direction, Opportunity
from strategy.threshold import ProfitThreshold

logger = logging.getLogger(__name__)


class Decision(Enum):
    SKIPPED = "skipped"
    BELOW_THRESHOLD = "below_threshold"
    SIMULATION_REJECTED = "simulation_rejected"
    DRY_RUN = "dry_run"
    BUSY = "busy"
    EXECUTED = "executed"
    EXECUTION_FAILED = "execution_failed"
    ERROR = "error"


@dataclass
class DirectionReport:
    direction: Direction
    decision: Decision
    evaluation: Optional[Evaluation] = None
    simulation: Optional[SimulationResult] = None
    execution: Optional[ExecutionResult] = None
    error: Optional[str] = None

    @property
    def opportunity(self) -> Optional[Opportunity]:
        if isinstance(self.evaluation, Opportunity):
            return self.evaluation
        return None


@dataclass
class CycleReport:
    cycle: int
    block_number: Optional[int] = None
    directions: list[DirectionReport] = field(default_factory=list)

    @property
    def opportunities(self) -> list[Opportunity]:
        return [d.opportunity for d in self.directions if d.opportunity is not None]


@dataclass
class ScanConfig:
    amount_in: int
    interval_ms: int = 1000
    max_cycles: int = 0  # 0 = until stopped
    dry_run: bool = True


class ScanLoop:
    """
    Runs :meth:`run_cycle` on a fixed interval until :meth:`stop` is called.

    A cycle evaluates both directions of the venue pair; any opportunity whose
    profit reaches the threshold goes through the safety gate and then the
    execution guard. Nothing raised inside a cycle stops the loop.
    """

    def __init__(
        self,
        client: ChainClient,
        evaluator: RouteEvaluator,
        venue_a: Venue,
        venue_b: Venue,
        asset: Token,
        threshold: ProfitThreshold,
        config: ScanConfig,
        safety_gate: Optional[SafetyGate] = None,
        guard: Optional[ExecutionGuard] = None,
    ):
        if threshold.token != evaluator.quote_asset:
            raise ValueError("threshold must be expressed in the quote asset")
        self._client = client
        self._evaluator = evaluator
        self._venue_a = venue_a
        self._venue_b = venue_b
        self._asset = asset
        self._threshold = threshold
        self.config = config
        self._safety_gate = safety_gate
        self._guard = guard
        self._stop = threading.Event()
        self.cycle = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Finish the current cycle, then exit :meth:`run`."""
        self._stop.set()

    def run(self) -> int:
        """Loop until stopped or ``max_cycles`` is reached. Returns cycles run."""
        cfg = self.config
        logger.info(
            "Scanner starting: %s <-> %s, %s/%s, threshold %s, interval %dms%s",
            self._venue_a,
            self._venue_b,
            self._evaluator.quote_asset.symbol,
            self._asset.symbol,
            self._threshold,
            cfg.interval_ms,
            " [DRY-RUN]" if cfg.dry_run else "",
        )
        while not self._stop.is_set():
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Scan cycle #%d failed", self.cycle)
            if cfg.max_cycles and self.cycle >= cfg.max_cycles:
                break
            self._stop.wait(cfg.interval_ms / 1000)
        logger.info("Arbitrage loop terminated after %d cycles.", self.cycle)
        return self.cycle

    def run_cycle(self) -> CycleReport:
        self.cycle += 1
        report = CycleReport(cycle=self.cycle, block_number=self._read_block_number())
        logger.info("--- Scan cycle #%d (block %s) ---", self.cycle, report.block_number)

        for direction, buy_venue, sell_venue in self._routes():
            try:
                entry = self._scan_direction(
                    direction, buy_venue, sell_venue, report.block_number
                )
            except Exception as exc:
                logger.exception("%s evaluation failed", direction.value)
                entry = DirectionReport(direction, Decision.ERROR, error=str(exc))
            report.directions.append(entry)
        return report

    def evaluate(self) -> CycleReport:
        """Quote both directions without simulating or executing."""
        report = CycleReport(cycle=self.cycle, block_number=self._read_block_number())
        for direction, buy_venue, sell_venue in self._routes():
            evaluation = self._evaluator.evaluate(
                buy_venue,
                sell_venue,
                self._asset,
                self.config.amount_in,
                direction=direction,
                block_number=report.block_number,
            )
            decision = Decision.SKIPPED
            if isinstance(evaluation, Opportunity):
                decision = (
                    Decision.DRY_RUN
                    if self._threshold.is_met(evaluation.profit)
                    else Decision.BELOW_THRESHOLD
                )
            report.directions.append(DirectionReport(direction, decision, evaluation))
        return report

    def _routes(self) -> tuple[tuple[Direction, Venue, Venue], ...]:
        return (
            (Direction.A_TO_B, self._venue_a, self._venue_b),
            (Direction.B_TO_A, self._venue_b, self._venue_a),
        )

    def _read_block_number(self) -> Optional[int]:
        try:
            return self._client.get_block_number()
        except ChainError as exc:
            logger.warning("Could not read block height: %s", exc)
            return None

    def _scan_direction(
        self,
        direction: Direction,
        buy_venue: Venue,
        sell_venue: Venue,
        block_number: Optional[int],
    ) -> DirectionReport:
        amount_in = self.config.amount_in
        evaluation = self._evaluator.evaluate(
            buy_venue,
            sell_venue,
            self._asset,
            amount_in,
            direction=direction,
            block_number=block_number,
        )
        if isinstance(evaluation, Skipped):
            logger.info(
                "Skipping buy@%s sell@%s: %s (%s)",
                buy_venue,
                sell_venue,
                evaluation.reason.value,
                evaluation.detail,
            )
            return DirectionReport(direction, Decision.SKIPPED, evaluation)

        opportunity = evaluation
        logger.info("%s", opportunity.describe())
        if not self._threshold.is_met(opportunity.profit):
            logger.info("Profit below threshold %s, skipping.", self._threshold)
            return DirectionReport(direction, Decision.BELOW_THRESHOLD, opportunity)

        logger.info("Profit threshold met for %s. Checking settlement...", opportunity.label)
        report = DirectionReport(direction, Decision.DRY_RUN, opportunity)

        if self._safety_gate is not None:
            report.simulation = self._safety_gate.simulate(
                opportunity, buy_venue, sell_venue, self._asset, amount_in
            )
            if not report.simulation.is_ok:
                logger.warning("Simulation rejected: %s", report.simulation.detail)
                report.decision = Decision.SIMULATION_REJECTED
                return report

        if self.config.dry_run or self._guard is None:
            logger.info("[DRY-RUN] Would execute arbitrage for %s.", opportunity.label)
            return report

        result = self._guard.try_execute(
            opportunity, buy_venue, sell_venue, self._asset, amount_in
        )
        report.execution = result
        if result.status is ExecutionStatus.BUSY:
            report.decision = Decision.BUSY
        elif result.status is ExecutionStatus.SUBMITTED:
            report.decision = Decision.EXECUTED
            logger.info(
                "Arbitrage complete for %s: tx %s in block %d",
                opportunity.label,
                result.tx_hash,
                result.block_number,
            )
        else:
            report.decision = Decision.EXECUTION_FAILED
            logger.warning(
                "Execution failed for %s: %s %s",
                opportunity.label,
                result.reason.value if result.reason else "",
                result.detail,
            )
        return report
