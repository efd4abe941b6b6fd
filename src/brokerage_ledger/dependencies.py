"""FastAPI dependency injection: app.state holds singletons; Depends() resolves them.

No external DI container. wire_services() (called from the lifespan in
main.py) creates the guard, engine and query service once and attaches them
to app.state; these getters are used by Depends().
"""
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from sqlalchemy.engine import Engine

from brokerage_ledger.identity import HeaderIdentityResolver, Identity
from brokerage_ledger.ledger import ConcurrencyGuard, TradeErrorMapper
from brokerage_ledger.services import LedgerQueryService, TradeEngine


def wire_services(app: FastAPI, engine: Engine, *, lock_timeout: float) -> None:
    """Create and attach shared service instances to app.state (composition root)."""
    guard = ConcurrencyGuard(engine, lock_timeout=lock_timeout)
    queries = LedgerQueryService(engine)
    app.state.trade_engine = TradeEngine(guard)
    app.state.ledger_queries = queries
    app.state.error_mapper = TradeErrorMapper()
    app.state.identity_resolver = HeaderIdentityResolver(queries)


def get_trade_engine(request: Request) -> TradeEngine:
    """Resolve the TradeEngine from app.state (created at startup)."""
    return request.app.state.trade_engine


def get_ledger_queries(request: Request) -> LedgerQueryService:
    """Resolve the read-side LedgerQueryService from app.state."""
    return request.app.state.ledger_queries


def get_error_mapper(request: Request) -> TradeErrorMapper:
    return request.app.state.error_mapper


def get_current_identity(request: Request) -> Identity:
    """Resolve the caller; unauthenticated requests get 401, never a core error."""
    identity = request.app.state.identity_resolver.resolve(request)
    if identity is None:
        raise HTTPException(status_code=401, detail={"error": "Unauthorized"})
    return identity


# Type aliases for route injection
TradeEngineDep = Annotated[TradeEngine, Depends(get_trade_engine)]
LedgerQueriesDep = Annotated[LedgerQueryService, Depends(get_ledger_queries)]
ErrorMapperDep = Annotated[TradeErrorMapper, Depends(get_error_mapper)]
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
