"""Ledger core: money, accounting, persistence and per-user serialization."""
from brokerage_ledger.ledger.error_mapper import TradeErrorMapper
from brokerage_ledger.ledger.exceptions import (ConcurrencyConflict, ErrorKind,
                                                InsufficientFundsError,
                                                InsufficientSharesError,
                                                InternalError,
                                                PositionNotFoundError,
                                                TradeError,
                                                TradeValidationError,
                                                TransientUnavailable,
                                                WalletNotFoundError)
from brokerage_ledger.ledger.guard import ConcurrencyGuard
from brokerage_ledger.ledger.money import Money
from brokerage_ledger.ledger.store import LedgerStore

__all__ = [
    "ConcurrencyConflict",
    "ConcurrencyGuard",
    "ErrorKind",
    "InsufficientFundsError",
    "InsufficientSharesError",
    "InternalError",
    "LedgerStore",
    "Money",
    "PositionNotFoundError",
    "TradeError",
    "TradeErrorMapper",
    "TradeValidationError",
    "TransientUnavailable",
    "WalletNotFoundError",
]
