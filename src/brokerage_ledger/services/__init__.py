"""Service layer: trade execution and read-side ledger queries."""
from brokerage_ledger.services.ledger_queries import LedgerQueryService
from brokerage_ledger.services.trade_engine import (BuyResult, CashResult,
                                                    SellResult, TradeEngine)

__all__ = [
    "BuyResult",
    "CashResult",
    "LedgerQueryService",
    "SellResult",
    "TradeEngine",
]
