"""Shared utilities for the brokerage ledger."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp, the form stored in every ledger ``date`` column."""
    return datetime.now(timezone.utc)


def normalize_symbol(symbol: str) -> str:
    """Normalize a stock symbol (strip, uppercase)."""
    return symbol.strip().upper()
