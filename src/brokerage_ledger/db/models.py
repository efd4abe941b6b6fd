"""Database models for the brokerage ledger.

Monetary columns hold integer cents; convert through Money at the edges.
WalletBalance, BrokerageValue and LedgerTransaction rows are append-only.
Position is the only table whose rows are updated in place.
"""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import BigInteger, DateTime, UniqueConstraint
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

from brokerage_ledger.utils import utcnow

# Largest value a BigInteger (signed 64-bit) column holds.
MAX_STORED_INT = 2**63 - 1


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps on every backend.

    SQLite keeps no offset, so values are converted to UTC before binding and
    tagged as UTC when loaded; ``date DESC`` ordering then follows the instant.
    Naive datetimes are rejected.
    """

    impl = DateTime
    cache_ok = True

    def __init__(self) -> None:
        super().__init__(timezone=True)

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError(f"Ledger timestamps must be timezone-aware, got {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class AccountTag(str, Enum):
    """Where money comes from or goes to in a transaction."""

    WALLET = "WALLET"
    BROKERAGE = "BROKERAGE"
    EXTERNAL = "EXTERNAL"


class User(SQLModel, table=True):
    """Account owner. Credentials live with the identity provider, not here."""

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Symbol(SQLModel, table=True):
    """Reference data for a tradable symbol. Read-only to the ledger."""

    symbol: str = Field(primary_key=True)  # uppercase ticker
    name: str
    price_cents: int = Field(sa_type=BigInteger)


class Position(SQLModel, table=True):
    """A user's holding in one symbol, tracked at average cost."""

    __table_args__ = (UniqueConstraint("user_id", "symbol", name="uq_position_user_symbol"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    symbol: str
    name: str
    shares: int = Field(sa_type=BigInteger)  # always > 0; a position at zero shares is deleted
    avg_price_cents: int = Field(sa_type=BigInteger)
    current_price_cents: int = Field(sa_type=BigInteger)


class WalletBalance(SQLModel, table=True):
    """Snapshot of a user's cash balance."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    balance_cents: int = Field(sa_type=BigInteger)
    date: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)


class BrokerageValue(SQLModel, table=True):
    """Snapshot of a user's aggregate position value."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    value_cents: int = Field(sa_type=BigInteger)
    date: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)


class LedgerTransaction(SQLModel, table=True):
    """Immutable audit record, one per trade or cash movement."""

    __tablename__ = "ledger_transaction"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: TransactionType
    symbol: str | None = None
    shares: int | None = Field(default=None, sa_type=BigInteger)
    price_per_share_cents: int | None = Field(default=None, sa_type=BigInteger)
    amount_cents: int = Field(sa_type=BigInteger)
    from_account: AccountTag
    to_account: AccountTag
    description: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)
