import json
from decimal import Decimal

import pytest

from core.config.settings import RedisSettings
from services.demo_ledger.executor import execute_trade
from services.demo_ledger.persistence import LedgerStore, LoadedLedgerFields
from services.demo_ledger.seed import build_seed


def _traded_state(state_factory, trade_request, fixed_clock, sequential_ids):
    state = state_factory(balance="10000", xp=240, streak=5)
    state, _ = execute_trade(state, trade_request(amount="100", price="10"),
                             clock=fixed_clock, id_factory=sequential_ids)
    state, _ = execute_trade(state, trade_request(type="sell", amount="60", price="12"),
                             clock=fixed_clock, id_factory=sequential_ids)
    return state


def test_keys_are_namespaced(ledger_store):
    assert ledger_store.keys == {
        "balance": "test:agrx_demo:balance",
        "holdings": "test:agrx_demo:holdings",
        "trades": "test:agrx_demo:trades",
        "xp": "test:agrx_demo:xp",
        "streak": "test:agrx_demo:streak",
    }


@pytest.mark.asyncio
async def test_save_then_load_round_trips(ledger_store, in_memory_redis, state_factory,
                                          trade_request, fixed_clock, sequential_ids):
    state = _traded_state(state_factory, trade_request, fixed_clock, sequential_ids)

    assert await ledger_store.save(state) is True
    assert in_memory_redis.calls.count("mset") == 1

    loaded = await ledger_store.load()
    restored = loaded.apply_to(build_seed())

    assert restored.balance == state.balance == Decimal("9960")
    assert restored.holdings == state.holdings
    assert restored.trades == state.trades
    assert restored.xp == state.xp == 270
    assert restored.level == 3
    assert restored.streak == 5
    assert restored.is_loaded is True


@pytest.mark.asyncio
async def test_stored_layout_is_plain_json(ledger_store, in_memory_redis, state_factory,
                                           trade_request, fixed_clock, sequential_ids):
    state = _traded_state(state_factory, trade_request, fixed_clock, sequential_ids)
    await ledger_store.save(state)

    data = in_memory_redis.data
    assert json.loads(data["test:agrx_demo:balance"]) == 9960
    holding = json.loads(data["test:agrx_demo:holdings"])["x"]
    assert holding == {"stockId": "x", "ticker": "X", "name": "X S.A.", "shares": 5, "totalCost": 50}
    trades = json.loads(data["test:agrx_demo:trades"])
    assert [t["type"] for t in trades] == ["buy", "sell"]
    assert trades[1]["price"] == 12
    assert json.loads(data["test:agrx_demo:xp"]) == 270


@pytest.mark.asyncio
async def test_missing_keys_load_as_empty(ledger_store):
    loaded = await ledger_store.load()
    assert loaded == LoadedLedgerFields()
    assert loaded.is_empty()


@pytest.mark.asyncio
async def test_corrupt_field_does_not_discard_others(ledger_store, in_memory_redis):
    in_memory_redis.data.update({
        "test:agrx_demo:balance": "{not json",
        "test:agrx_demo:holdings": json.dumps(
            {"x": {"stockId": "x", "ticker": "X", "name": "X S.A.", "shares": 2, "totalCost": 20}}
        ),
        "test:agrx_demo:xp": "450",
    })

    loaded = await ledger_store.load()

    assert loaded.balance is None
    assert loaded.holdings["x"].total_cost == Decimal("20")
    assert loaded.xp == 450
    restored = loaded.apply_to(build_seed())
    assert restored.balance == build_seed().balance
    assert restored.level == 5


@pytest.mark.parametrize("field,raw", [
    ("balance", '"abc"'),
    ("balance", "-1"),
    ("balance", "NaN"),
    ("balance", "true"),
    ("holdings", "[]"),
    ("holdings", json.dumps({"x": {"stockId": "x", "shares": -1}})),
    ("trades", "{}"),
    ("trades", json.dumps([{"id": "t1", "type": "hold"}])),
    ("xp", "-5"),
    ("streak", "2.5"),
])
@pytest.mark.asyncio
async def test_invalid_values_fall_back_per_field(ledger_store, in_memory_redis, field, raw):
    in_memory_redis.data[f"test:agrx_demo:{field}"] = raw
    in_memory_redis.data["test:agrx_demo:streak" if field != "streak" else "test:agrx_demo:xp"] = "7"

    loaded = await ledger_store.load()

    assert getattr(loaded, field) is None
    assert (loaded.streak if field != "streak" else loaded.xp) == 7


@pytest.mark.asyncio
async def test_read_failure_yields_defaults(ledger_store, in_memory_redis):
    in_memory_redis.data["test:agrx_demo:balance"] = "123"
    in_memory_redis.fail_on.add("mget")

    loaded = await ledger_store.load()

    assert loaded.is_empty()


@pytest.mark.asyncio
async def test_write_failure_is_swallowed(ledger_store, in_memory_redis, state_factory):
    in_memory_redis.fail_on.add("mset")

    assert await ledger_store.save(state_factory()) is False
    assert in_memory_redis.data == {}


@pytest.mark.asyncio
async def test_clear_removes_every_key(ledger_store, in_memory_redis, state_factory):
    in_memory_redis.data["unrelated"] = "1"
    await ledger_store.save(state_factory())

    assert await ledger_store.clear() is True
    assert in_memory_redis.data == {"unrelated": "1"}

    in_memory_redis.fail_on.add("delete")
    assert await ledger_store.clear() is False


@pytest.mark.asyncio
async def test_health_check_and_close(test_settings, in_memory_redis):
    store = LedgerStore(test_settings, redis_client=in_memory_redis)

    health = await store.health_check()
    assert health["redis_connected"] is True
    assert health["namespace"] == "test"
    assert health["service_prefix"] == "agrx_demo"

    in_memory_redis.fail_on.add("ping")
    assert (await store.health_check())["redis_connected"] is False

    await store.close()
    assert in_memory_redis.closed is True


@pytest.mark.asyncio
async def test_unusable_redis_url_degrades_instead_of_raising(test_settings, state_factory):
    settings = test_settings.model_copy(update={"redis": RedisSettings(url="notaurl")})
    store = LedgerStore(settings)

    assert await store.initialize() is False
    assert (await store.load()).is_empty()
    assert await store.save(state_factory()) is False
    assert await store.clear() is False
    assert (await store.health_check())["redis_connected"] is False
    await store.close()


@pytest.mark.asyncio
async def test_close_failure_is_swallowed(ledger_store, in_memory_redis):
    in_memory_redis.fail_on.add("aclose")

    await ledger_store.close()

    assert in_memory_redis.closed is False
