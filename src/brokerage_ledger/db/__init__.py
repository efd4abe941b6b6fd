"""Database package: models and session management."""
from brokerage_ledger.db.models import (AccountTag, BrokerageValue,
                                        LedgerTransaction, Position, Symbol,
                                        TransactionType, User, WalletBalance)

__all__ = [
    "AccountTag",
    "BrokerageValue",
    "LedgerTransaction",
    "Position",
    "Symbol",
    "TransactionType",
    "User",
    "WalletBalance",
]
