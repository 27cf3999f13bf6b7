"""
Read-side derivations over a ledger snapshot.

Live prices come from the market-data collaborator on every call; the
ledger never fetches or caches prices itself.
"""
from decimal import Decimal
from typing import Callable, List, Mapping, Optional, Union

from core.trading.models import Holding, LedgerState, PnL
from core.trading.utils import round_money, to_decimal

PriceValue = Union[Decimal, int, float, str]
LivePrices = Mapping[str, PriceValue]
FallbackPrice = Callable[[str], Optional[PriceValue]]


def _price_for(stock_id: str, live_prices: LivePrices,
               fallback_price: Optional[FallbackPrice]) -> Optional[Decimal]:
    price = live_prices.get(stock_id)
    if price is None and fallback_price is not None:
        price = fallback_price(stock_id)
    return to_decimal(price) if price is not None else None


def get_portfolio_cost(state: LedgerState) -> Decimal:
    """Total cost basis of all open holdings."""
    return round_money(sum((h.total_cost for h in state.holdings.values()), Decimal("0")))


def get_portfolio_value(state: LedgerState, live_prices: LivePrices,
                        fallback_price: Optional[FallbackPrice] = None) -> Decimal:
    """Market value of all holdings.

    Uses the live price when present, otherwise the collaborator's last-known
    price; a holding with no price at all contributes nothing.
    """
    total = Decimal("0")
    for holding in state.holdings.values():
        price = _price_for(holding.stock_id, live_prices, fallback_price)
        if price is not None:
            total += holding.shares * price
    return round_money(total)


def get_portfolio_pnl(state: LedgerState, live_prices: LivePrices,
                      fallback_price: Optional[FallbackPrice] = None) -> PnL:
    """Unrealized P&L; percent is 0 when there is no cost basis."""
    value = get_portfolio_value(state, live_prices, fallback_price)
    cost = get_portfolio_cost(state)
    pnl = value - cost
    pnl_percent = (pnl / cost) * 100 if cost > 0 else Decimal("0")
    return PnL(pnl=round_money(pnl), pnl_percent=round_money(pnl_percent))


def holdings_list(state: LedgerState) -> List[Holding]:
    return list(state.holdings.values())


def get_holding(state: LedgerState, stock_id: str) -> Optional[Holding]:
    return state.holdings.get(stock_id)


def can_buy(state: LedgerState, amount: PriceValue) -> bool:
    amount = to_decimal(amount)
    return Decimal("0") < amount <= state.balance


def can_sell(state: LedgerState, stock_id: str, shares: PriceValue) -> bool:
    holding = state.holdings.get(stock_id)
    return holding is not None and holding.shares >= to_decimal(shares)
