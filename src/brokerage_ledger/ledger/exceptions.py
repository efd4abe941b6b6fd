"""Closed error taxonomy for trades and cash movements.

Every failure the engine reports is a TradeError subclass tagged with an
ErrorKind. Callers dispatch on ``kind`` (see TradeErrorMapper); ``retryable``
marks the errors where re-running the whole operation from scratch is safe.
"""
from enum import Enum
from typing import Any

from brokerage_ledger.ledger.money import Money


class ErrorKind(str, Enum):
    """Tag for each member of the error taxonomy."""

    VALIDATION = "validation_error"
    WALLET_NOT_FOUND = "wallet_not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    POSITION_NOT_FOUND = "position_not_found"
    INSUFFICIENT_SHARES = "insufficient_shares"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    TRANSIENT_UNAVAILABLE = "transient_unavailable"
    INTERNAL = "internal_error"


class TradeError(Exception):
    """Base class for every error a trade can end in."""

    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}
        # Set by the engine to the step the operation was in when it stopped.
        self.stage: str | None = None


class TradeValidationError(TradeError):
    """Malformed input: non-positive price or shares, empty symbol or id."""

    kind = ErrorKind.VALIDATION


class WalletNotFoundError(TradeError):
    """The account has no wallet row; a data-integrity fault."""

    kind = ErrorKind.WALLET_NOT_FOUND

    def __init__(self, user_id: int) -> None:
        super().__init__("No wallet balance found. Please contact support.")
        self.user_id = user_id


class InsufficientFundsError(TradeError):
    """The wallet cannot cover the requested amount."""

    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, required: Money, available: Money) -> None:
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(
            "Insufficient funds",
            {
                "required": str(required),
                "available": str(available),
                "shortfall": str(self.shortfall),
            },
        )


class PositionNotFoundError(TradeError):
    """The position is absent or belongs to another user.

    The two cases share one message so that ownership is not disclosed.
    """

    kind = ErrorKind.POSITION_NOT_FOUND

    def __init__(self, position_id: int) -> None:
        super().__init__("Position not found")
        self.position_id = position_id


class InsufficientSharesError(TradeError):
    """A sell asks for more shares than the position holds."""

    kind = ErrorKind.INSUFFICIENT_SHARES

    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            "Insufficient shares",
            {"requested": requested, "available": available},
        )


class ConcurrencyConflict(TradeError):
    """Another transaction on the same account won a read-then-write race."""

    kind = ErrorKind.CONCURRENCY_CONFLICT
    retryable = True


class TransientUnavailable(TradeError):
    """The atomic unit could not be acquired within the lock timeout."""

    kind = ErrorKind.TRANSIENT_UNAVAILABLE
    retryable = True


class InternalError(TradeError):
    """Unexpected failure. The original exception is chained as __cause__."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


__all__ = [
    "ConcurrencyConflict",
    "ErrorKind",
    "InsufficientFundsError",
    "InsufficientSharesError",
    "InternalError",
    "PositionNotFoundError",
    "TradeError",
    "TradeValidationError",
    "TransientUnavailable",
    "WalletNotFoundError",
]
