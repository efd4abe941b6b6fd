"""Read-only ledger routes for the authenticated caller."""
from fastapi import APIRouter, Query

from brokerage_ledger.dependencies import CurrentIdentity, LedgerQueriesDep
from brokerage_ledger.schemas import (BalancesOut, BrokerageValueOut, MeOut,
                                      PositionOut, TransactionOut,
                                      WalletBalanceOut, money)

router = APIRouter(tags=["ledger"])


@router.get("/me", response_model=MeOut)
def me(identity: CurrentIdentity) -> MeOut:
    return MeOut(id=identity.user_id, email=identity.email)


@router.get("/balances", response_model=BalancesOut)
def get_balances(identity: CurrentIdentity, queries: LedgerQueriesDep) -> BalancesOut:
    """Current wallet balance and brokerage value.

    ``wallet_balance`` is null until the wallet is opened by a deposit.
    """
    snapshot = queries.snapshot(identity.user_id)
    return BalancesOut(
        wallet_balance=(
            money(snapshot.wallet_balance) if snapshot.wallet_balance is not None else None
        ),
        brokerage_value=money(snapshot.brokerage_value),
    )


@router.get("/positions", response_model=list[PositionOut])
def get_positions(identity: CurrentIdentity, queries: LedgerQueriesDep) -> list[PositionOut]:
    return [PositionOut.from_view(v) for v in queries.positions(identity.user_id)]


@router.get("/wallet-balances", response_model=list[WalletBalanceOut])
def get_wallet_balances(
    identity: CurrentIdentity, queries: LedgerQueriesDep
) -> list[WalletBalanceOut]:
    """Wallet balance history, oldest first."""
    return [WalletBalanceOut.from_point(p) for p in queries.wallet_history(identity.user_id)]


@router.get("/brokerage-values", response_model=list[BrokerageValueOut])
def get_brokerage_values(
    identity: CurrentIdentity, queries: LedgerQueriesDep
) -> list[BrokerageValueOut]:
    """Brokerage value history, oldest first."""
    return [
        BrokerageValueOut.from_point(p) for p in queries.brokerage_history(identity.user_id)
    ]


@router.get("/transactions", response_model=list[TransactionOut])
def get_transactions(
    identity: CurrentIdentity,
    queries: LedgerQueriesDep,
    limit: int | None = Query(default=None, ge=1, le=1000, description="Max results"),
) -> list[TransactionOut]:
    """Transaction history, newest first."""
    return [
        TransactionOut.from_view(t)
        for t in queries.transactions(identity.user_id, limit=limit)
    ]
