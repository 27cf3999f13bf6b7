import json
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import ValidationError

from core.config.settings import Settings
from core.logging import bind_ledger_context, get_error_logger_safe, get_persistence_logger_safe
from core.trading.models import Holding, LedgerState, Trade
from core.trading.utils import round_money
from core.utils.exceptions import PersistenceReadError, PersistenceWriteError, RedisError
from core.utils.state_manager import BaseStateManager

LEDGER_FIELDS: Tuple[str, ...] = ("balance", "holdings", "trades", "xp", "streak")


@dataclass(frozen=True)
class LoadedLedgerFields:
    """Fields recovered from storage. None means missing or unreadable."""
    balance: Optional[Decimal] = None
    holdings: Optional[Dict[str, Holding]] = None
    trades: Optional[Tuple[Trade, ...]] = None
    xp: Optional[int] = None
    streak: Optional[int] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f) is None for f in LEDGER_FIELDS)

    def apply_to(self, state: LedgerState) -> LedgerState:
        """Overlay every recovered field on `state` and mark it loaded."""
        changes: Dict[str, Any] = {
            f: getattr(self, f) for f in LEDGER_FIELDS if getattr(self, f) is not None
        }
        changes["is_loaded"] = True
        return state.evolve(**changes)


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode(field: str, raw: Optional[str]) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise PersistenceReadError(f"Stored {field} is not valid JSON: {e}", field=field)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _parse_balance(value: Any) -> Decimal:
    if not _is_number(value) or value < 0:
        raise PersistenceReadError(f"Stored balance must be a non-negative number, got {value!r}",
                                   field="balance")
    return round_money(value)


def _parse_counter(field: str) -> Callable[[Any], int]:
    def parse(value: Any) -> int:
        if not _is_number(value) or value < 0 or int(value) != value:
            raise PersistenceReadError(f"Stored {field} must be a non-negative integer, got {value!r}",
                                       field=field)
        return int(value)
    return parse


def _parse_holdings(value: Any) -> Dict[str, Holding]:
    if not isinstance(value, dict):
        raise PersistenceReadError("Stored holdings must be an object", field="holdings")
    try:
        holdings = [Holding.model_validate(item) for item in value.values()]
    except ValidationError as e:
        raise PersistenceReadError(f"Stored holdings are malformed: {e}", field="holdings")
    return {h.stock_id: h for h in holdings}


def _parse_trades(value: Any) -> Tuple[Trade, ...]:
    if not isinstance(value, list):
        raise PersistenceReadError("Stored trades must be an array", field="trades")
    try:
        return tuple(Trade.model_validate(item) for item in value)
    except ValidationError as e:
        raise PersistenceReadError(f"Stored trades are malformed: {e}", field="trades")


_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "balance": _parse_balance,
    "holdings": _parse_holdings,
    "trades": _parse_trades,
    "xp": _parse_counter("xp"),
    "streak": _parse_counter("streak"),
}


class LedgerStore(BaseStateManager):
    """
    Mirrors the ledger snapshot into Redis, one JSON value per field.

    Reads are field-isolated: a corrupt field is dropped on its own and the
    rest still load. Neither reads nor writes ever raise to the caller.
    """

    def __init__(self, settings: Settings, redis_client=None):
        super().__init__(settings, redis_client)
        self.namespace = settings.ledger.namespace
        self.logger = bind_ledger_context(
            get_persistence_logger_safe("demo_ledger.store"), self.namespace
        )
        self.error_logger = bind_ledger_context(
            get_error_logger_safe("demo_ledger.store_errors"), self.namespace
        )

    def _get_service_prefix(self) -> str:
        return self.settings.ledger.key_prefix

    async def initialize(self, namespace: Optional[str] = None) -> bool:
        """Create the Redis client. Failure leaves the store degraded, not broken."""
        try:
            await super().initialize(namespace or self.settings.ledger.namespace)
        except RedisError as e:
            self.error_logger.error("Ledger storage unavailable, running in memory only",
                                    operation=e.operation, error=str(e))
            return False
        return True

    async def close(self) -> None:
        try:
            await super().close()
        except RedisError as e:
            self.error_logger.warning("Failed to close ledger storage", operation=e.operation, error=str(e))

    @property
    def keys(self) -> Dict[str, str]:
        return {field: self._get_key(field) for field in LEDGER_FIELDS}

    async def load(self) -> LoadedLedgerFields:
        """Read every field in one round trip, keeping whatever parses."""
        keys = self.keys
        try:
            raw = await self._get_multiple_values(list(keys.values()))
        except RedisError as e:
            self.error_logger.error("Failed to read persisted ledger, using defaults",
                                    operation=e.operation, error=str(e))
            return LoadedLedgerFields()

        values: Dict[str, Any] = {}
        for field, key in keys.items():
            stored = raw.get(key)
            if stored is None:
                continue
            try:
                values[field] = _PARSERS[field](_decode(field, stored))
            except PersistenceReadError as e:
                self.logger.warning("Discarding unreadable persisted field",
                                    field=e.field, key=key, error=e.message)

        loaded = LoadedLedgerFields(**values)
        self.logger.info("Loaded persisted ledger",
                         fields=sorted(values), missing_or_invalid=sorted(set(LEDGER_FIELDS) - set(values)))
        return loaded

    def _encode(self, state: LedgerState) -> Dict[str, str]:
        keys = self.keys
        payload = {
            "balance": state.balance,
            "holdings": {sid: h.model_dump(by_alias=True) for sid, h in state.holdings.items()},
            "trades": [t.model_dump(by_alias=True) for t in state.trades],
            "xp": state.xp,
            "streak": state.streak,
        }
        try:
            return {keys[f]: json.dumps(payload[f], default=_json_default) for f in LEDGER_FIELDS}
        except (TypeError, ValueError) as e:
            raise PersistenceWriteError(f"Failed to serialize ledger snapshot: {e}", operation="encode")

    async def _write(self, state: LedgerState) -> None:
        encoded = self._encode(state)
        try:
            await self._set_multiple_values(encoded)
        except RedisError as e:
            raise PersistenceWriteError(f"Failed to write ledger snapshot: {e}", operation=e.operation)

    async def save(self, state: LedgerState) -> bool:
        """Write all fields as one batch. Failures are logged, never raised."""
        try:
            await self._write(state)
        except PersistenceWriteError as e:
            self.error_logger.error("Failed to persist ledger", operation=e.operation, error=e.message)
            return False
        self.logger.debug("Persisted ledger", balance=str(state.balance),
                          holdings=len(state.holdings), trades=len(state.trades))
        return True

    async def clear(self) -> bool:
        """Remove every persisted ledger key."""
        try:
            removed = await self._delete_keys(list(self.keys.values()))
        except RedisError as e:
            self.error_logger.error("Failed to clear persisted ledger", operation=e.operation, error=str(e))
            return False
        self.logger.info("Cleared persisted ledger", keys_removed=removed)
        return True
