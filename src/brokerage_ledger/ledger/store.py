"""Ledger store: point-in-time reads and append-only writes for one session.

A LedgerStore never commits. It is bound to a session whose transaction is
owned by the ConcurrencyGuard, so every write made through it lands or rolls
back together.
"""
from datetime import datetime

from sqlmodel import Session, col, select

from brokerage_ledger.db.models import (AccountTag, BrokerageValue,
                                        LedgerTransaction, Position,
                                        TransactionType, WalletBalance)
from brokerage_ledger.ledger.money import Money


class LedgerStore:
    """Persistence operations for wallet, brokerage, positions and transactions."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # Wallet balance

    def latest_wallet_balance(self, user_id: int) -> Money | None:
        """Balance of the row with the latest date (ties: highest id), or None."""
        row = self._session.exec(
            select(WalletBalance)
            .where(WalletBalance.user_id == user_id)
            .order_by(col(WalletBalance.date).desc(), col(WalletBalance.id).desc())
            .limit(1)
        ).first()
        return Money(row.balance_cents) if row is not None else None

    def append_wallet_balance(
        self, user_id: int, balance: Money, at: datetime
    ) -> WalletBalance:
        row = WalletBalance(user_id=user_id, balance_cents=balance.cents, date=at)
        self._session.add(row)
        self._session.flush()
        return row

    # Brokerage value

    def latest_brokerage_value(self, user_id: int) -> Money:
        """Value of the latest row; zero before the first trade."""
        row = self._session.exec(
            select(BrokerageValue)
            .where(BrokerageValue.user_id == user_id)
            .order_by(col(BrokerageValue.date).desc(), col(BrokerageValue.id).desc())
            .limit(1)
        ).first()
        return Money(row.value_cents) if row is not None else Money.zero()

    def append_brokerage_value(
        self, user_id: int, value: Money, at: datetime
    ) -> BrokerageValue:
        row = BrokerageValue(user_id=user_id, value_cents=value.cents, date=at)
        self._session.add(row)
        self._session.flush()
        return row

    # Positions

    def find_position(self, user_id: int, symbol: str) -> Position | None:
        return self._session.exec(
            select(Position).where(
                Position.user_id == user_id, Position.symbol == symbol
            )
        ).first()

    def get_position(self, position_id: int) -> Position | None:
        return self._session.get(Position, position_id)

    def upsert_position(self, position: Position) -> Position:
        """Insert a new position or flush changes to an existing one."""
        if position.shares <= 0:
            raise ValueError(f"Refusing to persist position with {position.shares} shares")
        self._session.add(position)
        self._session.flush()
        return position

    def delete_position(self, position_id: int) -> None:
        position = self._session.get(Position, position_id)
        if position is not None:
            self._session.delete(position)
            self._session.flush()

    # Transactions

    def append_transaction(
        self,
        user_id: int,
        type_: TransactionType,
        amount: Money,
        from_account: AccountTag,
        to_account: AccountTag,
        description: str,
        at: datetime,
        *,
        symbol: str | None = None,
        shares: int | None = None,
        price_per_share: Money | None = None,
    ) -> LedgerTransaction:
        record = LedgerTransaction(
            user_id=user_id,
            type=type_,
            symbol=symbol,
            shares=shares,
            price_per_share_cents=price_per_share.cents if price_per_share is not None else None,
            amount_cents=amount.cents,
            from_account=from_account,
            to_account=to_account,
            description=description,
            created_at=at,
        )
        self._session.add(record)
        self._session.flush()
        return record
