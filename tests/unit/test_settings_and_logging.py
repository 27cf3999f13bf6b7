from decimal import Decimal

import pytest
from pydantic import ValidationError

from core.config.settings import Environment, LedgerSettings, Settings
from core.logging import _redaction_processor, bind_ledger_context, get_channel_logger
from core.logging.channels import LogChannel, get_channel_for_component


def test_ledger_settings_defaults():
    config = LedgerSettings()
    assert config.demo_balance == Decimal("10000")
    assert (config.starting_xp, config.starting_streak, config.xp_per_trade) == (240, 5, 15)
    assert config.dust_threshold == Decimal("0.0001")
    assert config.max_trades is None


def test_nested_env_overrides(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("LEDGER__DEMO_BALANCE", "50000")
    monkeypatch.setenv("LEDGER__NAMESPACE", "staging")
    monkeypatch.setenv("REDIS__URL", "redis://cache:6379/2")

    settings = Settings(_env_file=None)

    assert settings.environment is Environment.TESTING
    assert settings.ledger.demo_balance == Decimal("50000")
    assert settings.ledger.namespace == "staging"
    assert settings.ledger.key_prefix == "agrx_demo"
    assert settings.redis.url == "redis://cache:6379/2"


@pytest.mark.parametrize("overrides", [
    {"demo_balance": "0"},
    {"dust_threshold": "-0.1"},
    {"max_trades": 0},
    {"starting_xp": -1},
    {"xp_per_trade": -15},
])
def test_invalid_ledger_settings_rejected(overrides):
    with pytest.raises(ValidationError):
        LedgerSettings(**overrides)


def test_redaction_masks_nested_secrets():
    settings = Settings(_env_file=None)
    redact = _redaction_processor(settings)

    event = redact(None, "info", {
        "event": "connect",
        "password": "hunter2",
        "headers": {"Authorization": "Bearer x", "accept": "json"},
        "items": [{"token": "t"}],
    })

    assert event["password"] == "[REDACTED]"
    assert event["headers"] == {"Authorization": "[REDACTED]", "accept": "json"}
    assert event["items"] == [{"token": "[REDACTED]"}]
    assert event["event"] == "connect"


def test_component_channels():
    assert get_channel_for_component("executor") is LogChannel.TRADING
    assert get_channel_for_component("ledger_store") is LogChannel.PERSISTENCE
    assert get_channel_for_component("audit") is LogChannel.AUDIT
    assert get_channel_for_component("unknown") is LogChannel.APPLICATION


def test_bind_ledger_context_adds_namespace_and_stock():
    logger = bind_ledger_context(get_channel_logger("test", LogChannel.TRADING), "demo", stock_id="opap")
    context = logger._context

    assert context["channel"] == "trading"
    assert context["namespace"] == "demo"
    assert context["stock_id"] == "opap"
