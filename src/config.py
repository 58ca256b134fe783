"""Environment-backed configuration, read once at startup."""

import importlib
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

_ENV_LOADED = False

DEFAULT_SETTLEMENT_SIGNATURE = "executeArbitrage(address,address,address,uint256)"


class ConfigurationError(Exception):
    """Missing or invalid startup configuration. Fatal."""


def _load_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    try:
        dotenv = importlib.import_module("dotenv")
    except ImportError as exc:
        raise SystemExit("python-dotenv is required (pip install -e .)") from exc
    env_path = Path(os.environ.get("ARB_ENV_FILE", Path.cwd() / ".env"))
    dotenv.load_dotenv(dotenv_path=env_path)
    _ENV_LOADED = True


def get_env(
    name: str, default: str | None = None, required: bool = False
) -> str | None:
    _load_env()
    value = os.environ.get(name, default)
    if required and (value is None or value == ""):
        raise ConfigurationError(f"{name} env var is required")
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = get_env(name)
    if raw is None or raw == "":
        return default
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _get_int(name: str, default: int, minimum: int = 0) -> int:
    raw = get_env(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}")
    return value


def _get_decimal_string(name: str, default: str) -> str:
    raw = (get_env(name, default) or default).strip()
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} must be a decimal number, got {raw!r}") from exc
    if not value.is_finite() or value < 0:
        raise ConfigurationError(f"{name} must be a non-negative decimal, got {raw!r}")
    return raw


def _get_log_level() -> str:
    level = (get_env("LOG_LEVEL", "INFO") or "INFO").strip().upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigurationError(f"LOG_LEVEL {level!r} is not a logging level")
    return level


@dataclass(frozen=True)
class Settings:
    rpc_urls: list[str]
    buy_router: str
    sell_router: str
    settlement_address: Optional[str]
    private_key: Optional[str]
    chain_id: int = 1
    settlement_signature: str = DEFAULT_SETTLEMENT_SIGNATURE
    quote_token: str = "USDC"
    trade_token: str = "WETH"
    quote_token_address: Optional[str] = None
    trade_token_address: Optional[str] = None
    trade_amount: str = "0.1"
    min_profit: str = "0.01"
    scan_interval_ms: int = 1000
    max_cycles: int = 0
    gas_margin: Decimal = Decimal("1.15")
    gas_priority: str = "medium"
    receipt_timeout: int = 120
    dry_run: bool = True
    log_verbose: bool = True
    log_level: str = "INFO"

    def __repr__(self) -> str:
        # private_key stays out of logs
        return (
            f"Settings(chain_id={self.chain_id}, buy_router={self.buy_router}, "
            f"sell_router={self.sell_router}, settlement={self.settlement_address}, "
            f"pair={self.quote_token}/{self.trade_token}, amount={self.trade_amount}, "
            f"min_profit={self.min_profit}, interval_ms={self.scan_interval_ms}, "
            f"dry_run={self.dry_run})"
        )


def load_settings(
    dry_run: Optional[bool] = None, max_cycles: Optional[int] = None
) -> Settings:
    """Build :class:`Settings` from the environment; CLI flags override."""
    rpc_raw = get_env("RPC_URLS") or get_env("PROVIDER_URL")
    if not rpc_raw:
        raise ConfigurationError("RPC_URLS env var is required")
    rpc_urls = [url.strip() for url in rpc_raw.split(",") if url.strip()]

    effective_dry_run = _get_bool("DRY_RUN", True) if dry_run is None else dry_run
    settlement = get_env("SETTLEMENT_ADDRESS") or None
    private_key = get_env("PRIVATE_KEY") or None
    if not effective_dry_run:
        if settlement is None:
            raise ConfigurationError("SETTLEMENT_ADDRESS is required when DRY_RUN=false")
        if private_key is None:
            raise ConfigurationError("PRIVATE_KEY is required when DRY_RUN=false")

    gas_margin_raw = _get_decimal_string("GAS_MARGIN", "1.15")
    gas_margin = Decimal(gas_margin_raw)
    if gas_margin < 1:
        raise ConfigurationError("GAS_MARGIN must be >= 1")

    gas_priority = (get_env("GAS_PRIORITY", "medium") or "medium").lower()
    if gas_priority not in ("low", "medium", "high"):
        raise ConfigurationError("GAS_PRIORITY must be low, medium, or high")

    return Settings(
        rpc_urls=rpc_urls,
        buy_router=get_env("BUY_ROUTER_ADDRESS", required=True),
        sell_router=get_env("SELL_ROUTER_ADDRESS", required=True),
        settlement_address=settlement,
        private_key=private_key,
        chain_id=_get_int("CHAIN_ID", 1, minimum=1),
        settlement_signature=get_env("SETTLEMENT_SIGNATURE") or DEFAULT_SETTLEMENT_SIGNATURE,
        quote_token=get_env("QUOTE_TOKEN", "USDC") or "USDC",
        trade_token=get_env("TRADE_TOKEN", "WETH") or "WETH",
        quote_token_address=get_env("QUOTE_TOKEN_ADDRESS") or None,
        trade_token_address=get_env("TRADE_TOKEN_ADDRESS") or None,
        trade_amount=_get_decimal_string("TRADE_AMOUNT", "0.1"),
        min_profit=_get_decimal_string("MIN_PROFIT", "0.01"),
        scan_interval_ms=_get_int("SCAN_INTERVAL_MS", 1000),
        max_cycles=_get_int("MAX_CYCLES", 0) if max_cycles is None else max_cycles,
        gas_margin=gas_margin,
        gas_priority=gas_priority,
        receipt_timeout=_get_int("RECEIPT_TIMEOUT", 120, minimum=1),
        dry_run=effective_dry_run,
        log_verbose=_get_bool("LOG_VERBOSE", True),
        log_level=_get_log_level(),
    )
