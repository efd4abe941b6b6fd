"""Tests for TradeErrorMapper."""
import pytest
from fastapi import HTTPException

from brokerage_ledger.ledger import (ConcurrencyConflict, InsufficientFundsError,
                                     InternalError, Money, PositionNotFoundError,
                                     TradeErrorMapper, TradeValidationError,
                                     TransientUnavailable)
from brokerage_ledger.ledger.error_mapper import STATUS_BY_KIND
from brokerage_ledger.ledger.exceptions import ErrorKind


@pytest.fixture
def mapper() -> TradeErrorMapper:
    return TradeErrorMapper()


def test_every_kind_has_a_status():
    assert set(STATUS_BY_KIND) == set(ErrorKind)


def test_insufficient_funds(mapper):
    exc = InsufficientFundsError(required=Money.of("600"), available=Money.of("400"))
    status, detail = mapper.to_http(exc)
    assert status == 400
    assert detail == {
        "error": "Insufficient funds",
        "code": "insufficient_funds",
        "details": {"required": "600.00", "available": "400.00", "shortfall": "200.00"},
    }


def test_position_not_found_is_404(mapper):
    status, detail = mapper.to_http(PositionNotFoundError(42))
    assert status == 404
    assert detail["error"] == "Position not found"


def test_validation_without_details(mapper):
    status, detail = mapper.to_http(TradeValidationError("shares must be positive"))
    assert status == 400
    assert "details" not in detail
    assert "retryable" not in detail


def test_internal_error_is_generic(mapper):
    status, detail = mapper.to_http(InternalError("boom: secret connection string"))
    assert status == 500
    assert detail == {"error": "Internal server error", "code": "internal_error"}


@pytest.mark.parametrize(
    "exc, status",
    [(ConcurrencyConflict("conflict"), 409), (TransientUnavailable("busy"), 503)],
)
def test_retryable_errors_carry_retry_after(exc, status):
    mapper = TradeErrorMapper(retry_after_seconds=2)
    with pytest.raises(HTTPException) as exc_info:
        mapper.raise_http(exc)
    assert exc_info.value.status_code == status
    assert exc_info.value.headers == {"Retry-After": "2"}
    assert exc_info.value.detail["retryable"] is True
    assert exc_info.value.__cause__ is exc


def test_non_retryable_has_no_headers(mapper):
    with pytest.raises(HTTPException) as exc_info:
        mapper.raise_http(PositionNotFoundError(1))
    assert exc_info.value.headers is None
