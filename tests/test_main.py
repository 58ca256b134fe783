import pytest
from eth_account import Account

import config
from config import ConfigurationError, Settings
from main import build_scanner, main


def _settings(**overrides):
    values = dict(
        rpc_urls=["https://rpc.example"],
        buy_router="0x" + "a" * 40,
        sell_router="0x" + "b" * 40,
        settlement_address=None,
        private_key=None,
    )
    values.update(overrides)
    return Settings(**values)


def test_dry_run_wiring_has_no_guard():
    scanner = build_scanner(_settings(settlement_address="0x" + "5" * 40))

    assert scanner.config.amount_in == 100_000
    assert scanner.config.dry_run is True
    assert scanner._safety_gate is not None
    assert scanner._guard is None


def test_live_wiring_builds_guard():
    scanner = build_scanner(
        _settings(
            settlement_address="0x" + "5" * 40,
            private_key=Account.create().key.hex(),
            dry_run=False,
        )
    )

    assert scanner._guard is not None
    assert scanner._guard.config.gas_margin == _settings().gas_margin


def test_identical_routers_rejected():
    with pytest.raises(ConfigurationError, match="must differ"):
        build_scanner(_settings(sell_router="0x" + "A" * 40))


def test_identical_tokens_rejected():
    with pytest.raises(ConfigurationError, match="must differ"):
        build_scanner(_settings(trade_token="USDC"))


def test_trade_amount_below_one_unit_rejected():
    with pytest.raises(ConfigurationError, match="below one base unit"):
        build_scanner(_settings(trade_amount="0.0000001"))


def test_invalid_router_address_rejected():
    with pytest.raises(ConfigurationError, match="router address"):
        build_scanner(_settings(buy_router="0x1234"))


def test_main_returns_2_on_configuration_error(monkeypatch, capsys):
    monkeypatch.setattr(config, "_ENV_LOADED", True)
    monkeypatch.delenv("RPC_URLS", raising=False)
    monkeypatch.delenv("PROVIDER_URL", raising=False)

    assert main(["once"]) == 2
    assert "configuration error" in capsys.readouterr().err


def test_unrepresentable_trade_amount_is_configuration_error():
    with pytest.raises(ConfigurationError, match="uint256"):
        build_scanner(_settings(trade_amount="1e999999"))
