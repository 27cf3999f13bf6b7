import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from core.config.settings import Settings
from core.logging import (
    bind_ledger_context,
    get_audit_logger_safe,
    get_error_logger_safe,
    get_trading_logger_safe,
)
from core.trading.models import Holding, LedgerState, PnL, TradeInput, TradeResult
from .executor import Clock, IdFactory, award_xp, execute_trade
from .persistence import LedgerStore
from .seed import build_reset_state, build_seed
from .valuation import (
    FallbackPrice,
    LivePrices,
    PriceValue,
    can_buy,
    can_sell,
    get_holding,
    get_portfolio_cost,
    get_portfolio_pnl,
    get_portfolio_value,
    holdings_list,
)


class DemoLedgerService:
    """
    Owns the one authoritative ledger snapshot for the process.

    Every change runs as read-latest, compute-next, replace without an await
    in between, so callers on the event loop can never interleave two
    transitions computed from the same snapshot. Persistence runs on a
    background writer that always stores the newest snapshot.
    """

    def __init__(self, settings: Settings, store: LedgerStore, *,
                 fallback_price: Optional[FallbackPrice] = None,
                 clock: Optional[Clock] = None,
                 id_factory: Optional[IdFactory] = None):
        self.settings = settings
        self.store = store
        self.fallback_price = fallback_price
        self._clock = clock
        self._id_factory = id_factory
        self._state: LedgerState = build_seed(settings)

        self._dirty = False
        self._writer: Optional[asyncio.Task] = None

        self.logger = bind_ledger_context(
            get_trading_logger_safe("demo_ledger.service"), settings.ledger.namespace
        )
        self.audit_logger = bind_ledger_context(
            get_audit_logger_safe("demo_ledger.audit"), settings.ledger.namespace
        )
        self.error_logger = get_error_logger_safe("demo_ledger.service_errors")

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state.is_loaded

    async def initialize(self) -> LedgerState:
        """Hydrate from storage. The ledger counts as loaded even if nothing was readable."""
        self.logger.info("Loading demo ledger")
        await self.store.initialize()
        loaded = await self.store.load()
        # Overlay on the latest snapshot, not one captured before the await
        self._state = loaded.apply_to(self._state)
        self.logger.info("Demo ledger loaded",
                         restored=not loaded.is_empty(),
                         balance=str(self._state.balance),
                         holdings=len(self._state.holdings),
                         trades=len(self._state.trades))
        return self._state

    async def start(self) -> LedgerState:
        """Start ledger service (alias for initialize)."""
        return await self.initialize()

    async def shutdown(self) -> None:
        """Flush pending writes and release the store."""
        self.logger.info("Stopping demo ledger")
        await self.flush()
        await self.store.close()
        self.logger.info("Demo ledger stopped")

    async def stop(self) -> None:
        """Stop ledger service (alias for shutdown)."""
        await self.shutdown()

    # ── State transitions ──────────────────────────────────────────────

    def execute_trade(self, trade_input: Union[TradeInput, Mapping[str, Any]]) -> TradeResult:
        """Execute one trade against the latest snapshot."""
        next_state, result = execute_trade(
            self._state,
            trade_input,
            settings=self.settings,
            clock=self._clock,
            id_factory=self._id_factory,
        )
        if not result.success:
            self.logger.info("Trade rejected", error_code=result.error_code.value, error=result.error)
            return result

        self._state = next_state
        trade = result.trade
        self.audit_logger.info("Trade executed",
                               trade_id=trade.id,
                               stock_id=trade.stock_id,
                               trade_type=trade.type.value,
                               amount=str(trade.amount),
                               shares=str(trade.shares),
                               price=str(trade.price),
                               balance=str(next_state.balance))
        self._schedule_persist()
        return result

    def award_xp(self, amount: int) -> LedgerState:
        next_state = award_xp(self._state, amount)
        if next_state is not self._state:
            self._state = next_state
            self.logger.info("XP awarded", amount=amount, xp=next_state.xp, level=next_state.level)
            self._schedule_persist()
        return self._state

    async def reset(self) -> LedgerState:
        """Restore the seed snapshot and wipe persisted keys."""
        self._state = build_reset_state(self.settings)
        self._dirty = False
        self.audit_logger.info("Demo ledger reset", balance=str(self._state.balance))
        # A save already in flight may land after the delete; let it finish first
        await self.flush()
        await self.store.clear()
        return self._state

    # ── Persistence ────────────────────────────────────────────────────

    def _schedule_persist(self) -> None:
        if not self._state.is_loaded:
            # Writing now would overwrite data that has not been read yet
            self.logger.debug("Skipping persist before ledger is loaded")
            return
        self._dirty = True
        if self._writer is not None and not self._writer.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.error_logger.warning("No running event loop, ledger change not persisted")
            return
        self._writer = loop.create_task(self._persist_latest())

    async def _persist_latest(self) -> None:
        while self._dirty:
            self._dirty = False
            await self.store.save(self._state)

    async def flush(self) -> None:
        """Wait until the newest snapshot has been handed to the store."""
        writer = self._writer
        if writer is not None:
            await asyncio.shield(writer)

    # ── Read side ──────────────────────────────────────────────────────

    def holdings_list(self) -> List[Holding]:
        return holdings_list(self._state)

    def get_holding(self, stock_id: str) -> Optional[Holding]:
        return get_holding(self._state, stock_id)

    def can_buy(self, amount: PriceValue) -> bool:
        return can_buy(self._state, amount)

    def can_sell(self, stock_id: str, shares: PriceValue) -> bool:
        return can_sell(self._state, stock_id, shares)

    def portfolio_cost(self) -> Decimal:
        return get_portfolio_cost(self._state)

    def portfolio_value(self, live_prices: LivePrices) -> Decimal:
        return get_portfolio_value(self._state, live_prices, self.fallback_price)

    def portfolio_pnl(self, live_prices: LivePrices) -> PnL:
        return get_portfolio_pnl(self._state, live_prices, self.fallback_price)

    async def health_check(self) -> Dict[str, Any]:
        health = await self.store.health_check()
        health["ledger_loaded"] = self.is_loaded
        return health
