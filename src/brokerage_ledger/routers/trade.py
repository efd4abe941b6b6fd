"""Trade and cash-movement routes.

Handlers are thin: they pass the raw body to the TradeEngine and map any
TradeError to HTTP through the TradeErrorMapper. Handlers are plain ``def``
so FastAPI runs them in its threadpool; the engine blocks on database I/O
and on the per-user lock.
"""
from fastapi import APIRouter

from brokerage_ledger.dependencies import (CurrentIdentity, ErrorMapperDep,
                                           TradeEngineDep)
from brokerage_ledger.ledger import TradeError
from brokerage_ledger.schemas import (BuyRequest, BuyResponse, CashRequest,
                                      CashResponse, SellRequest, SellResponse)

router = APIRouter(tags=["trade"])


@router.post("/buy", response_model=BuyResponse)
def buy(
    body: BuyRequest,
    identity: CurrentIdentity,
    engine: TradeEngineDep,
    error_mapper: ErrorMapperDep,
) -> BuyResponse:
    """Buy shares of a symbol at the given price out of the caller's wallet."""
    try:
        result = engine.buy(
            identity.user_id, body.symbol, body.name, body.price, body.shares
        )
    except TradeError as e:
        error_mapper.raise_http(e)
    return BuyResponse.from_result(result)


@router.post("/sell", response_model=SellResponse)
def sell(
    body: SellRequest,
    identity: CurrentIdentity,
    engine: TradeEngineDep,
    error_mapper: ErrorMapperDep,
) -> SellResponse:
    """Sell shares of one of the caller's positions at its current price."""
    try:
        result = engine.sell(identity.user_id, body.position_id, body.shares)
    except TradeError as e:
        error_mapper.raise_http(e)
    return SellResponse.from_result(result)


@router.post("/deposit", response_model=CashResponse)
def deposit(
    body: CashRequest,
    identity: CurrentIdentity,
    engine: TradeEngineDep,
    error_mapper: ErrorMapperDep,
) -> CashResponse:
    """Add cash to the caller's wallet, opening it on the first deposit."""
    try:
        result = engine.deposit(identity.user_id, body.amount)
    except TradeError as e:
        error_mapper.raise_http(e)
    return CashResponse.from_result(result)


@router.post("/withdraw", response_model=CashResponse)
def withdraw(
    body: CashRequest,
    identity: CurrentIdentity,
    engine: TradeEngineDep,
    error_mapper: ErrorMapperDep,
) -> CashResponse:
    """Take cash out of the caller's wallet."""
    try:
        result = engine.withdraw(identity.user_id, body.amount)
    except TradeError as e:
        error_mapper.raise_http(e)
    return CashResponse.from_result(result)
