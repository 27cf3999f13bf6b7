"""Canonical starting snapshot for a fresh demo account."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Tuple, Union

from core.config.settings import LedgerSettings, Settings
from core.trading.models import Holding, LedgerState
from core.trading.utils import round_money
from core.utils.exceptions import ConfigurationError


@dataclass(frozen=True)
class SeedPosition:
    stock_id: str
    ticker: str
    name: str
    shares: Decimal
    avg_cost: Decimal

    @property
    def cost(self) -> Decimal:
        return round_money(self.shares * self.avg_cost)


# ATHEX positions every new demo account starts with
DEMO_PORTFOLIO: Tuple[SeedPosition, ...] = (
    SeedPosition("opap", "OPAP", "OPAP S.A.", Decimal("50"), Decimal("15.20")),
    SeedPosition("ppc", "PPC", "Public Power Corporation", Decimal("30"), Decimal("11.80")),
    SeedPosition("ete", "ETE", "National Bank of Greece", Decimal("100"), Decimal("6.90")),
    SeedPosition("mtln", "MTLN", "Metlen Energy & Metals", Decimal("10"), Decimal("34.50")),
)


def seed_holdings(portfolio: Tuple[SeedPosition, ...] = DEMO_PORTFOLIO) -> Dict[str, Holding]:
    return {
        p.stock_id: Holding(
            stock_id=p.stock_id,
            ticker=p.ticker,
            name=p.name,
            shares=p.shares,
            total_cost=p.cost,
        )
        for p in portfolio
    }


def seed_cost(portfolio: Tuple[SeedPosition, ...] = DEMO_PORTFOLIO) -> Decimal:
    return round_money(sum((p.cost for p in portfolio), Decimal("0")))


def build_seed(settings: Union[Settings, LedgerSettings, None] = None,
               portfolio: Tuple[SeedPosition, ...] = DEMO_PORTFOLIO) -> LedgerState:
    """Build the starting snapshot: seed holdings plus whatever cash they leave."""
    if settings is None:
        config = LedgerSettings()
    elif isinstance(settings, Settings):
        config = settings.ledger
    else:
        config = settings

    cost = seed_cost(portfolio)
    if cost > config.demo_balance:
        raise ConfigurationError(
            f"Seed holdings cost €{cost:.2f} exceeds the demo balance",
            config_field="ledger.demo_balance",
            config_value=str(config.demo_balance),
        )

    return LedgerState(
        balance=round_money(config.demo_balance - cost),
        holdings=seed_holdings(portfolio),
        trades=(),
        xp=config.starting_xp,
        streak=config.starting_streak,
        is_loaded=False,
    )


def build_reset_state(settings: Optional[Union[Settings, LedgerSettings]] = None) -> LedgerState:
    """Seed snapshot as installed by a reset: already counts as loaded."""
    return build_seed(settings).evolve(is_loaded=True)
