"""CLI entrypoint for the arbitrage scanner."""

from __future__ import annotations

import argparse
import logging
import signal
import sys

from chain import ChainClient
from config import ConfigurationError, Settings, load_settings
from core.base_types import Address
from core.units import InvalidAmount, to_base_units, to_human_string
from core.wallet_manager import WalletManager
from executor import ExecutionGuard, GuardConfig, SafetyGate, SettlementContract
from pricing.quote_source import QuoteSource, Venue
from pricing.tokens import TokenRegistry
from scanner import ScanConfig, ScanLoop
from strategy import ProfitThreshold, RouteEvaluator

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Two-venue DEX arbitrage scanner")
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("scan", "Run the scan loop until interrupted"),
        ("once", "Run a single scan cycle and exit"),
        ("quote", "Quote both directions and print them; no simulation or execution"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--dry-run",
            action="store_true",
            default=None,
            help="Evaluate and simulate only, never submit",
        )
        if name == "scan":
            sub.add_argument(
                "--max-cycles", type=int, default=None, help="Stop after N cycles"
            )

    parser.set_defaults(command="scan", dry_run=None, max_cycles=None)
    return parser


def _venue(name: str, address: str) -> Venue:
    try:
        return Venue(name=name, router=Address.from_string(address))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid {name} router address: {address!r}") from exc


def build_scanner(settings: Settings) -> ScanLoop:
    """Wire every component from startup settings. Raises ConfigurationError."""
    client = ChainClient(settings.rpc_urls)
    registry = TokenRegistry(client)
    quote_asset = registry.resolve(settings.quote_token, settings.quote_token_address)
    asset = registry.resolve(settings.trade_token, settings.trade_token_address)
    if quote_asset == asset:
        raise ConfigurationError("QUOTE_TOKEN and TRADE_TOKEN must differ")

    try:
        amount_in = to_base_units(settings.trade_amount, quote_asset.decimals)
        threshold = ProfitThreshold.from_human(settings.min_profit, quote_asset)
    except InvalidAmount as exc:
        raise ConfigurationError(str(exc)) from exc
    if amount_in == 0:
        raise ConfigurationError(f"TRADE_AMOUNT {settings.trade_amount} is below one base unit")

    venue_a = _venue("buy-router", settings.buy_router)
    venue_b = _venue("sell-router", settings.sell_router)
    if venue_a.router == venue_b.router:
        raise ConfigurationError("BUY_ROUTER_ADDRESS and SELL_ROUTER_ADDRESS must differ")

    wallet = None
    if settings.private_key:
        try:
            wallet = WalletManager(settings.private_key)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    safety_gate = None
    guard = None
    if settings.settlement_address:
        try:
            settlement = SettlementContract(
                address=Address.from_string(settings.settlement_address),
                signature=settings.settlement_signature,
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        sender = Address.from_string(wallet.address) if wallet else None
        safety_gate = SafetyGate(client, settlement, sender=sender, chain_id=settings.chain_id)
        if wallet is not None and not settings.dry_run:
            guard = ExecutionGuard(
                client,
                wallet,
                settlement,
                GuardConfig(
                    gas_margin=settings.gas_margin,
                    gas_priority=settings.gas_priority,
                    receipt_timeout=settings.receipt_timeout,
                    chain_id=settings.chain_id,
                ),
            )

    logger.info(
        "trade amount %s %s (%d base units), min profit %s",
        to_human_string(amount_in, quote_asset.decimals),
        quote_asset.symbol,
        amount_in,
        threshold,
    )
    return ScanLoop(
        client=client,
        evaluator=RouteEvaluator(
            QuoteSource(client), quote_asset, verbose=settings.log_verbose
        ),
        venue_a=venue_a,
        venue_b=venue_b,
        asset=asset,
        threshold=threshold,
        config=ScanConfig(
            amount_in=amount_in,
            interval_ms=settings.scan_interval_ms,
            max_cycles=settings.max_cycles,
            dry_run=settings.dry_run,
        ),
        safety_gate=safety_gate,
        guard=guard,
    )


def _install_signal_handlers(scanner: ScanLoop) -> None:
    def _handle(signum, _frame):
        logger.info("Received signal %d, stopping after current cycle", signum)
        scanner.stop()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for `arb-scanner`."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(dry_run=args.dry_run, max_cycles=args.max_cycles)
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logger.info("%r", settings)
        scanner = build_scanner(settings)
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2

    if args.command == "quote":
        report = scanner.evaluate()
        for entry in report.directions:
            if entry.opportunity is not None:
                print(f"{entry.direction.value}: {entry.opportunity.describe()}")
            else:
                skipped = entry.evaluation
                print(
                    f"{entry.direction.value}: skipped "
                    f"({skipped.reason.value}: {skipped.detail})"
                )
        return 0

    if args.command == "once":
        scanner.run_cycle()
        return 0

    _install_signal_handlers(scanner)
    scanner.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
