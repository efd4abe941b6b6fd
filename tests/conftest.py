"""Shared fixtures: a file-backed SQLite ledger per test, plus helpers."""
from collections.abc import Callable

import pytest
from sqlmodel import Session, col, select

from brokerage_ledger.db.models import (BrokerageValue, LedgerTransaction,
                                        Position, User, WalletBalance)
from brokerage_ledger.db.sessions import create_ledger_engine, init_db
from brokerage_ledger.ledger import ConcurrencyGuard, Money
from brokerage_ledger.services import LedgerQueryService, TradeEngine
from brokerage_ledger.utils import utcnow


@pytest.fixture
def db_engine(tmp_path):
    """Fresh database file; a file (not :memory:) so worker threads share it."""
    engine = create_ledger_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}", echo=False, lock_timeout=5.0
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def guard(db_engine) -> ConcurrencyGuard:
    return ConcurrencyGuard(db_engine, lock_timeout=5.0)


@pytest.fixture
def trade_engine(guard) -> TradeEngine:
    return TradeEngine(guard)


@pytest.fixture
def queries(db_engine) -> LedgerQueryService:
    return LedgerQueryService(db_engine)


@pytest.fixture
def make_user(db_engine) -> Callable[..., int]:
    """Create a user, optionally with an opening wallet balance; returns the id."""
    counter = iter(range(1, 10_000))

    def _make(balance: str | None = None, email: str | None = None) -> int:
        with Session(db_engine) as session, session.begin():
            user = User(email=email or f"user{next(counter)}@example.com")
            session.add(user)
            session.flush()
            if balance is not None:
                session.add(
                    WalletBalance(
                        user_id=user.id,
                        balance_cents=Money.of(balance).cents,
                        date=utcnow(),
                    )
                )
            return user.id

    return _make


def snapshot_ledger(engine) -> dict[str, list[tuple]]:
    """Every ledger row as plain tuples, for before/after comparisons."""
    with Session(engine) as session:
        return {
            "positions": [
                (p.id, p.user_id, p.symbol, p.shares, p.avg_price_cents, p.current_price_cents)
                for p in session.exec(select(Position).order_by(col(Position.id)))
            ],
            "wallet": [
                (w.id, w.user_id, w.balance_cents)
                for w in session.exec(select(WalletBalance).order_by(col(WalletBalance.id)))
            ],
            "brokerage": [
                (b.id, b.user_id, b.value_cents)
                for b in session.exec(select(BrokerageValue).order_by(col(BrokerageValue.id)))
            ],
            "transactions": [
                (t.id, t.user_id, t.type, t.amount_cents)
                for t in session.exec(
                    select(LedgerTransaction).order_by(col(LedgerTransaction.id))
                )
            ],
        }


@pytest.fixture
def ledger_rows(db_engine) -> Callable[[], dict[str, list[tuple]]]:
    return lambda: snapshot_ledger(db_engine)
