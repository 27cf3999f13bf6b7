"""
Trade execution against a ledger snapshot.

Every function here is pure: it takes a snapshot and returns the next one
without touching storage. Callers own the snapshot and persistence.
"""
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from core.config.settings import LedgerSettings, Settings
from core.logging import get_trading_logger_safe
from core.trading.models import (
    Holding,
    LedgerState,
    Trade,
    TradeErrorCode,
    TradeInput,
    TradeResult,
    TradeType,
)
from core.trading.utils import round_money, round_shares
from core.utils.ids import generate_trade_id, now_ms


Clock = Callable[[], int]
IdFactory = Callable[[int], str]

AMOUNT_NOT_POSITIVE = "Amount must be positive"
PRICE_NOT_POSITIVE = "Price must be positive"


def _ledger_settings(settings: Union[Settings, LedgerSettings, None]) -> LedgerSettings:
    if settings is None:
        return LedgerSettings()
    if isinstance(settings, Settings):
        return settings.ledger
    return settings


def _append_trade(state: LedgerState, trade: Trade, max_trades: Optional[int]) -> Tuple[Trade, ...]:
    trades = state.trades + (trade,)
    if max_trades is not None and len(trades) > max_trades:
        trades = trades[-max_trades:]
    return trades


def _reject(state: LedgerState, code: TradeErrorCode, message: str,
            **context: Any) -> Tuple[LedgerState, TradeResult]:
    # Bound loggers keep the config active when bound, so look it up per call
    logger = get_trading_logger_safe("demo_ledger.executor")
    logger.debug("Trade rejected", error_code=code.value, **context)
    return state, TradeResult.failed(code, message)


def _invalid_number_code(error: ValidationError) -> Optional[TradeErrorCode]:
    """Map a failed amount/price field (non-numeric, NaN, infinite) to its trade error."""
    fields = {err["loc"][0] for err in error.errors() if err["loc"]}
    if "amount" in fields:
        return TradeErrorCode.INVALID_AMOUNT
    if "price" in fields:
        return TradeErrorCode.INVALID_PRICE
    return None


def execute_trade(
    state: LedgerState,
    trade_input: Union[TradeInput, Mapping],
    *,
    settings: Union[Settings, LedgerSettings, None] = None,
    clock: Optional[Clock] = None,
    id_factory: Optional[IdFactory] = None,
) -> Tuple[LedgerState, TradeResult]:
    """Validate and apply one buy or sell.

    Returns ``(next_state, result)``. On any validation failure the input
    ``state`` object itself is returned and ``result.error`` carries a
    message meant to be shown to the user as-is.

    Checks run on the amount as submitted; the amount is rounded to cents
    only where it is booked against the balance and the trade log.
    """
    if not isinstance(trade_input, TradeInput):
        try:
            trade_input = TradeInput.model_validate(trade_input)
        except ValidationError as e:
            code = _invalid_number_code(e)
            if code is None:
                raise
            message = AMOUNT_NOT_POSITIVE if code is TradeErrorCode.INVALID_AMOUNT else PRICE_NOT_POSITIVE
            stock_id = trade_input.get("stockId", trade_input.get("stock_id"))
            return _reject(state, code, message, stock_id=stock_id)
    config = _ledger_settings(settings)

    amount = trade_input.amount
    price = trade_input.price
    context = {
        "stock_id": trade_input.stock_id,
        "trade_type": trade_input.type.value,
        "amount": str(amount),
    }

    if amount <= 0:
        return _reject(state, TradeErrorCode.INVALID_AMOUNT, AMOUNT_NOT_POSITIVE, **context)
    if price <= 0:
        return _reject(state, TradeErrorCode.INVALID_PRICE, PRICE_NOT_POSITIVE, **context)

    shares = round_shares(amount / price)
    cash = round_money(amount)
    if cash <= 0 or shares <= 0:
        return _reject(
            state,
            TradeErrorCode.INVALID_AMOUNT,
            f"Amount is too small to trade at €{price:.2f} per share",
            **context,
        )
    stock_id = trade_input.stock_id
    existing = state.holdings.get(stock_id)

    if trade_input.type == TradeType.BUY:
        if amount > state.balance:
            return _reject(
                state,
                TradeErrorCode.INSUFFICIENT_BALANCE,
                f"Insufficient balance. You have €{state.balance:.2f} but need €{amount:.2f}",
                **context,
            )
        if existing is not None:
            holding = existing.model_copy(update={
                "shares": round_shares(existing.shares + shares),
                "total_cost": round_money(existing.total_cost + cash),
            })
        else:
            holding = Holding(
                stock_id=stock_id,
                ticker=trade_input.ticker,
                name=trade_input.name,
                shares=shares,
                total_cost=cash,
            )
        holdings = {**state.holdings, stock_id: holding}
        # amount <= balance and balance sits on the cent grid, so cash <= balance too
        balance = round_money(state.balance - cash)
    else:
        owned = existing.shares if existing is not None else Decimal("0")
        if existing is None or existing.shares < shares:
            return _reject(
                state,
                TradeErrorCode.INSUFFICIENT_SHARES,
                f"Insufficient shares. You own {owned:.4f} shares of {trade_input.ticker} "
                f"but tried to sell {shares:.4f}",
                **context,
            )
        avg_cost = round_money(existing.total_cost / existing.shares)
        cost_removed = round_money(avg_cost * shares)
        new_shares = round_shares(existing.shares - shares)
        new_total_cost = round_money(existing.total_cost - cost_removed)

        holdings = dict(state.holdings)
        if new_shares < config.dust_threshold:
            # Position closed; sub-threshold dust is discarded
            del holdings[stock_id]
        else:
            holdings[stock_id] = existing.model_copy(update={
                "shares": new_shares,
                "total_cost": max(new_total_cost, Decimal("0.00")),
            })
        balance = round_money(state.balance + cash)

    timestamp = (clock or now_ms)()
    trade = Trade(
        id=(id_factory or generate_trade_id)(timestamp),
        stock_id=stock_id,
        ticker=trade_input.ticker,
        name=trade_input.name,
        type=trade_input.type,
        amount=cash,
        shares=shares,
        price=price,
        timestamp=timestamp,
    )

    next_state = state.evolve(
        balance=balance,
        holdings=holdings,
        trades=_append_trade(state, trade, config.max_trades),
        xp=state.xp + config.xp_per_trade,
    )
    return next_state, TradeResult.ok(trade)


def award_xp(state: LedgerState, amount: int) -> LedgerState:
    """Add XP outside of trading (achievements, streak bonuses)."""
    if amount < 0:
        raise ValueError("XP award cannot be negative")
    if amount == 0:
        return state
    return state.evolve(xp=state.xp + amount)
