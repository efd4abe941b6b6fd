"""API routers for the brokerage ledger.

Includes routes for:
- /buy, /sell - Trades through the TradeEngine
- /deposit, /withdraw - Cash movements
- /me, /balances, /positions, /wallet-balances, /brokerage-values, /transactions - Ledger reads
- /symbols - Symbol reference data
"""
from brokerage_ledger.routers.ledger import router as ledger_router
from brokerage_ledger.routers.symbols import router as symbols_router
from brokerage_ledger.routers.trade import router as trade_router

__all__ = [
    "ledger_router",
    "symbols_router",
    "trade_router",
]
