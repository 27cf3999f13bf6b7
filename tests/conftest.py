"""
Pytest configuration and shared fixtures for demo ledger tests.
"""
import itertools
from decimal import Decimal

import pytest

from core.config.settings import Settings, LedgerSettings, RedisSettings
from core.trading.models import Holding, LedgerState
from services.demo_ledger.persistence import LedgerStore
from services.demo_ledger.service import DemoLedgerService
from tests.mocks.in_memory_redis import InMemoryRedis


@pytest.fixture
def test_settings():
    """Test settings configuration."""
    return Settings(
        environment="testing",
        redis=RedisSettings(url="redis://localhost:6379/15"),
        ledger=LedgerSettings(namespace="test", key_prefix="agrx_demo"),
    )


@pytest.fixture
def fixed_clock():
    """Deterministic epoch-millisecond clock advancing 1s per call."""
    ticks = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(ticks)


@pytest.fixture
def sequential_ids():
    counter = itertools.count(1)
    return lambda ts: f"trade-{ts}-{next(counter):04d}"


@pytest.fixture
def in_memory_redis():
    return InMemoryRedis()


@pytest.fixture
def ledger_store(test_settings, in_memory_redis):
    return LedgerStore(test_settings, redis_client=in_memory_redis)


@pytest.fixture
def ledger_service(test_settings, ledger_store, fixed_clock, sequential_ids):
    return DemoLedgerService(
        test_settings,
        ledger_store,
        clock=fixed_clock,
        id_factory=sequential_ids,
    )


@pytest.fixture
def state_factory():
    """Factory for ledger snapshots with explicit balance and holdings."""
    def _create_state(balance="10000", holdings=None, xp=0, streak=0, is_loaded=True) -> LedgerState:
        built = {}
        for stock_id, (shares, total_cost) in (holdings or {}).items():
            built[stock_id] = Holding(
                stock_id=stock_id,
                ticker=stock_id.upper(),
                name=f"{stock_id.upper()} S.A.",
                shares=Decimal(str(shares)),
                total_cost=Decimal(str(total_cost)),
            )
        return LedgerState(
            balance=Decimal(str(balance)),
            holdings=built,
            xp=xp,
            streak=streak,
            is_loaded=is_loaded,
        )
    return _create_state


@pytest.fixture
def trade_request():
    """Factory for trade request payloads as a UI would send them."""
    def _create_request(type="buy", amount="100", price="10", stock_id="x"):
        return {
            "stockId": stock_id,
            "ticker": stock_id.upper(),
            "name": f"{stock_id.upper()} S.A.",
            "type": type,
            "amount": amount,
            "price": price,
        }
    return _create_request
