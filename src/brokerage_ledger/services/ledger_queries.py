"""Read-side queries over the ledger: history, holdings and reference data.

These never write and take no per-user lock; each call reads one consistent
snapshot through its own session. Sessions are bound read-only, so on SQLite
they open a deferred transaction and do not take the writer lock.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from brokerage_ledger.db.models import (AccountTag, BrokerageValue,
                                        LedgerTransaction, Position, Symbol,
                                        TransactionType, User, WalletBalance)
from brokerage_ledger.db.sessions import read_only
from brokerage_ledger.ledger.accounting import Holding
from brokerage_ledger.ledger.money import Money
from brokerage_ledger.ledger.store import LedgerStore


@dataclass(frozen=True)
class PositionView:
    id: int
    symbol: str
    name: str
    holding: Holding


@dataclass(frozen=True)
class BalancePoint:
    id: int
    amount: Money
    date: datetime


@dataclass(frozen=True)
class TransactionView:
    id: int
    type: TransactionType
    symbol: str | None
    shares: int | None
    price_per_share: Money | None
    amount: Money
    from_account: AccountTag
    to_account: AccountTag
    description: str
    created_at: datetime


@dataclass(frozen=True)
class SymbolView:
    symbol: str
    name: str
    price: Money


@dataclass(frozen=True)
class AccountSnapshot:
    """Current wallet balance (None before the wallet is opened) and brokerage value."""

    wallet_balance: Money | None
    brokerage_value: Money


class LedgerQueryService:
    """Read-only views of one user's ledger."""

    def __init__(self, engine: Engine) -> None:
        self._engine = read_only(engine)

    def find_user(self, user_id: int) -> User | None:
        with Session(self._engine) as session:
            return session.get(User, user_id)

    def snapshot(self, user_id: int) -> AccountSnapshot:
        with Session(self._engine) as session:
            store = LedgerStore(session)
            return AccountSnapshot(
                wallet_balance=store.latest_wallet_balance(user_id),
                brokerage_value=store.latest_brokerage_value(user_id),
            )

    def positions(self, user_id: int) -> list[PositionView]:
        with Session(self._engine) as session:
            rows = session.exec(
                select(Position)
                .where(Position.user_id == user_id)
                .order_by(col(Position.symbol))
            ).all()
            return [
                PositionView(
                    id=row.id,
                    symbol=row.symbol,
                    name=row.name,
                    holding=Holding(
                        shares=row.shares,
                        avg_price=Money(row.avg_price_cents),
                        current_price=Money(row.current_price_cents),
                    ),
                )
                for row in rows
            ]

    def wallet_history(self, user_id: int) -> list[BalancePoint]:
        """Wallet snapshots, oldest first."""
        with Session(self._engine) as session:
            rows = session.exec(
                select(WalletBalance)
                .where(WalletBalance.user_id == user_id)
                .order_by(col(WalletBalance.date), col(WalletBalance.id))
            ).all()
            return [BalancePoint(row.id, Money(row.balance_cents), row.date) for row in rows]

    def brokerage_history(self, user_id: int) -> list[BalancePoint]:
        """Brokerage value snapshots, oldest first."""
        with Session(self._engine) as session:
            rows = session.exec(
                select(BrokerageValue)
                .where(BrokerageValue.user_id == user_id)
                .order_by(col(BrokerageValue.date), col(BrokerageValue.id))
            ).all()
            return [BalancePoint(row.id, Money(row.value_cents), row.date) for row in rows]

    def transactions(self, user_id: int, limit: int | None = None) -> list[TransactionView]:
        """Transactions, newest first."""
        with Session(self._engine) as session:
            query = (
                select(LedgerTransaction)
                .where(LedgerTransaction.user_id == user_id)
                .order_by(col(LedgerTransaction.created_at).desc(), col(LedgerTransaction.id).desc())
            )
            if limit is not None:
                query = query.limit(limit)
            return [
                TransactionView(
                    id=row.id,
                    type=row.type,
                    symbol=row.symbol,
                    shares=row.shares,
                    price_per_share=(
                        Money(row.price_per_share_cents)
                        if row.price_per_share_cents is not None
                        else None
                    ),
                    amount=Money(row.amount_cents),
                    from_account=row.from_account,
                    to_account=row.to_account,
                    description=row.description,
                    created_at=row.created_at,
                )
                for row in session.exec(query).all()
            ]

    def symbols(self) -> list[SymbolView]:
        with Session(self._engine) as session:
            rows = session.exec(select(Symbol).order_by(col(Symbol.symbol))).all()
            return [SymbolView(row.symbol, row.name, Money(row.price_cents)) for row in rows]
