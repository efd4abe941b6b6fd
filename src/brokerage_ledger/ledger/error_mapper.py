"""Domain concept for mapping trade errors to HTTP responses."""
from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException

from brokerage_ledger.ledger.exceptions import ErrorKind, TradeError

# Every ErrorKind must appear here; test_error_mapper checks exhaustiveness.
STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.WALLET_NOT_FOUND: 400,
    ErrorKind.INSUFFICIENT_FUNDS: 400,
    ErrorKind.POSITION_NOT_FOUND: 404,
    ErrorKind.INSUFFICIENT_SHARES: 400,
    ErrorKind.CONCURRENCY_CONFLICT: 409,
    ErrorKind.TRANSIENT_UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class TradeErrorMapper:
    """Maps TradeError kinds to HTTP (status_code, detail).

    Inject this into routers so every trade endpoint reports errors with the
    same status codes and body shape.
    """

    retry_after_seconds: int = 1
    status_by_kind: dict[ErrorKind, int] = field(default_factory=lambda: dict(STATUS_BY_KIND))

    def to_http(self, exc: TradeError) -> tuple[int, dict[str, Any]]:
        """Map a trade error to (status_code, detail) for HTTP responses.

        Internal errors never leak their message; the caller sees a generic text.

        Returns:
            (status_code, detail) suitable for HTTPException(status_code=..., detail=...).
        """
        status_code = self.status_by_kind[exc.kind]
        if exc.kind is ErrorKind.INTERNAL:
            return (status_code, {"error": "Internal server error", "code": exc.kind.value})
        detail: dict[str, Any] = {"error": exc.message, "code": exc.kind.value}
        if exc.details:
            detail["details"] = exc.details
        if exc.retryable:
            detail["retryable"] = True
        return (status_code, detail)

    def raise_http(self, exc: TradeError) -> None:
        """Map trade error to HTTP and raise HTTPException. Never returns."""
        status_code, detail = self.to_http(exc)
        headers = {"Retry-After": str(self.retry_after_seconds)} if exc.retryable else None
        raise HTTPException(status_code=status_code, detail=detail, headers=headers) from exc
