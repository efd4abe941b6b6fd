"""Pydantic schemas for the HTTP API. Not persisted to DB.

Request bodies are deliberately loose (``Any``): the trade engine is the only
validator, so malformed values reach it and come back as 400 validation
errors rather than framework 422s. Money is serialized as a decimal string.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from brokerage_ledger.db.models import AccountTag, TransactionType
from brokerage_ledger.ledger.money import Money
from brokerage_ledger.services.ledger_queries import (BalancePoint,
                                                      PositionView, SymbolView,
                                                      TransactionView)
from brokerage_ledger.services.trade_engine import (BuyResult, CashResult,
                                                    SellResult)


def money(value: Money) -> Decimal:
    return value.to_decimal()


# Requests


class BuyRequest(BaseModel):
    symbol: Any = None
    name: Any = None
    price: Any = None
    shares: Any = None


class SellRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    position_id: Any = Field(default=None, alias="positionId")
    shares: Any = None


class CashRequest(BaseModel):
    amount: Any = None


# Responses


class PurchaseOut(BaseModel):
    symbol: str
    name: str
    shares: int
    price_per_share: Decimal
    total_cost: Decimal


class BuyResponse(BaseModel):
    success: bool = True
    new_wallet_balance: Decimal
    new_brokerage_value: Decimal
    position_id: int
    transaction_id: int
    purchase: PurchaseOut

    @classmethod
    def from_result(cls, result: BuyResult) -> "BuyResponse":
        p = result.purchase
        return cls(
            new_wallet_balance=money(result.new_wallet_balance),
            new_brokerage_value=money(result.new_brokerage_value),
            position_id=result.position_id,
            transaction_id=result.transaction_id,
            purchase=PurchaseOut(
                symbol=p.symbol,
                name=p.name,
                shares=p.shares,
                price_per_share=money(p.price_per_share),
                total_cost=money(p.total_cost),
            ),
        )


class SaleOut(BaseModel):
    symbol: str
    shares: int
    price_per_share: Decimal
    total_value: Decimal
    realized_pnl: Decimal
    remaining_shares: int
    position_closed: bool


class SellResponse(BaseModel):
    success: bool = True
    new_wallet_balance: Decimal
    new_brokerage_value: Decimal
    transaction_id: int
    sale: SaleOut

    @classmethod
    def from_result(cls, result: SellResult) -> "SellResponse":
        s = result.sale
        return cls(
            new_wallet_balance=money(result.new_wallet_balance),
            new_brokerage_value=money(result.new_brokerage_value),
            transaction_id=result.transaction_id,
            sale=SaleOut(
                symbol=s.symbol,
                shares=s.shares,
                price_per_share=money(s.price_per_share),
                total_value=money(s.total_value),
                realized_pnl=money(s.realized_pnl),
                remaining_shares=s.remaining_shares,
                position_closed=s.position_closed,
            ),
        )


class CashResponse(BaseModel):
    success: bool = True
    new_wallet_balance: Decimal
    amount: Decimal
    transaction_id: int

    @classmethod
    def from_result(cls, result: CashResult) -> "CashResponse":
        return cls(
            new_wallet_balance=money(result.new_wallet_balance),
            amount=money(result.amount),
            transaction_id=result.transaction_id,
        )


class PositionOut(BaseModel):
    id: int
    symbol: str
    name: str
    shares: int
    avg_price: Decimal
    current_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal

    @classmethod
    def from_view(cls, view: PositionView) -> "PositionOut":
        h = view.holding
        return cls(
            id=view.id,
            symbol=view.symbol,
            name=view.name,
            shares=h.shares,
            avg_price=money(h.avg_price),
            current_price=money(h.current_price),
            market_value=money(h.market_value),
            unrealized_pnl=money(h.unrealized_pnl),
        )


class WalletBalanceOut(BaseModel):
    id: int
    balance: Decimal
    date: datetime

    @classmethod
    def from_point(cls, point: BalancePoint) -> "WalletBalanceOut":
        return cls(id=point.id, balance=money(point.amount), date=point.date)


class BrokerageValueOut(BaseModel):
    id: int
    value: Decimal
    date: datetime

    @classmethod
    def from_point(cls, point: BalancePoint) -> "BrokerageValueOut":
        return cls(id=point.id, value=money(point.amount), date=point.date)


class TransactionOut(BaseModel):
    id: int
    type: TransactionType
    symbol: str | None = None
    shares: int | None = None
    price_per_share: Decimal | None = None
    amount: Decimal
    from_account: AccountTag = Field(serialization_alias="from")
    to_account: AccountTag = Field(serialization_alias="to")
    description: str
    created_at: datetime

    @classmethod
    def from_view(cls, view: TransactionView) -> "TransactionOut":
        return cls(
            id=view.id,
            type=view.type,
            symbol=view.symbol,
            shares=view.shares,
            price_per_share=(
                money(view.price_per_share) if view.price_per_share is not None else None
            ),
            amount=money(view.amount),
            from_account=view.from_account,
            to_account=view.to_account,
            description=view.description,
            created_at=view.created_at,
        )


class BalancesOut(BaseModel):
    wallet_balance: Decimal | None
    brokerage_value: Decimal


class SymbolOut(BaseModel):
    symbol: str
    name: str
    price: Decimal

    @classmethod
    def from_view(cls, view: SymbolView) -> "SymbolOut":
        return cls(symbol=view.symbol, name=view.name, price=money(view.price))


class MeOut(BaseModel):
    id: int
    email: str


__all__ = [
    "BalancesOut",
    "BrokerageValueOut",
    "BuyRequest",
    "BuyResponse",
    "CashRequest",
    "CashResponse",
    "MeOut",
    "PositionOut",
    "SellRequest",
    "SellResponse",
    "SymbolOut",
    "TransactionOut",
    "WalletBalanceOut",
]
