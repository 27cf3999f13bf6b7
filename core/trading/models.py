from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .utils import round_money, round_shares, to_decimal


def level_for_xp(xp: int) -> int:
    """Level is one plus every full hundred XP."""
    return xp // 100 + 1


class TradeType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class TradeErrorCode(str, Enum):
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_PRICE = "InvalidPrice"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_SHARES = "InsufficientShares"


class LedgerModel(BaseModel):
    """Immutable base: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def _floats_via_str(cls, v, info: ValidationInfo):
        # Stored JSON numbers arrive as floats; read them as their shortest repr
        if isinstance(v, float) and cls.model_fields[info.field_name].annotation is Decimal:
            return to_decimal(v)
        return v


class Holding(LedgerModel):
    """
    One open position. `total_cost` is the weighted-average cost basis of
    every share currently held.
    """
    stock_id: str
    ticker: str
    name: str
    shares: Decimal = Field(ge=0)
    total_cost: Decimal = Field(ge=0)

    @field_validator("shares")
    @classmethod
    def _round_shares(cls, v):
        return round_shares(v)

    @field_validator("total_cost")
    @classmethod
    def _round_cost(cls, v):
        return round_money(v)

    @property
    def average_cost(self) -> Decimal:
        if self.shares <= 0:
            return Decimal("0.00")
        return round_money(self.total_cost / self.shares)


class Trade(LedgerModel):
    """Append-only trade log entry."""
    id: str
    stock_id: str
    ticker: str
    name: str
    type: TradeType
    amount: Decimal = Field(gt=0)
    shares: Decimal = Field(gt=0)
    price: Decimal = Field(gt=0)
    timestamp: int  # epoch milliseconds


class TradeInput(LedgerModel):
    """What a caller submits for execution. Values are checked by the executor."""
    stock_id: str
    ticker: str
    name: str
    type: TradeType
    amount: Decimal
    price: Decimal


class TradeResult(LedgerModel):
    success: bool
    error: Optional[str] = None
    error_code: Optional[TradeErrorCode] = None
    trade: Optional[Trade] = None

    @classmethod
    def ok(cls, trade: Trade) -> "TradeResult":
        return cls(success=True, trade=trade)

    @classmethod
    def failed(cls, code: TradeErrorCode, message: str) -> "TradeResult":
        return cls(success=False, error=message, error_code=code)

    def to_dict(self) -> Dict[str, Any]:
        """Response shape for UI consumers: {success, error?, trade?}."""
        out: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            out["error"] = self.error
        if self.trade is not None:
            out["trade"] = self.trade.model_dump(by_alias=True, mode="json")
        return out


class PnL(LedgerModel):
    pnl: Decimal
    pnl_percent: Decimal


class LedgerState(LedgerModel):
    """
    Full ledger snapshot. Never mutated in place: every transition builds a
    new instance, so a reader always sees a whole pre- or post-trade state.
    """
    is_demo: bool = True
    balance: Decimal = Field(ge=0)
    holdings: Dict[str, Holding] = Field(default_factory=dict)
    trades: Tuple[Trade, ...] = ()
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    streak: int = Field(default=0, ge=0)
    is_loaded: bool = False

    @model_validator(mode="before")
    @classmethod
    def _derive_level(cls, data):
        # level always follows xp; a stored or passed-in level is ignored
        if isinstance(data, dict):
            data = dict(data)
            xp = data.get("xp", 0)
            if isinstance(xp, int) and not isinstance(xp, bool) and xp >= 0:
                data["level"] = level_for_xp(xp)
        return data

    @field_validator("balance")
    @classmethod
    def _round_balance(cls, v):
        return round_money(v)

    def evolve(self, **changes: Any) -> "LedgerState":
        """Return a new snapshot with `changes` applied and level kept in sync."""
        if "xp" in changes:
            changes["level"] = level_for_xp(changes["xp"])
        return self.model_copy(update=changes)
