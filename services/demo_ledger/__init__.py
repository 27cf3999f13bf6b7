"""
Demo Ledger Service

Simulated brokerage ledger: demo cash, holdings, trade log and XP, kept
consistent across buys, sells, rounding and restarts.
"""

from .service import DemoLedgerService
from .executor import execute_trade, award_xp
from .persistence import LedgerStore, LoadedLedgerFields
from .seed import DEMO_PORTFOLIO, SeedPosition, build_seed
from .valuation import get_portfolio_cost, get_portfolio_value, get_portfolio_pnl

__all__ = [
    "DemoLedgerService",
    "execute_trade",
    "award_xp",
    "LedgerStore",
    "LoadedLedgerFields",
    "DEMO_PORTFOLIO",
    "SeedPosition",
    "build_seed",
    "get_portfolio_cost",
    "get_portfolio_value",
    "get_portfolio_pnl",
]
