"""Symbol reference data routes (read-only)."""
from fastapi import APIRouter

from brokerage_ledger.dependencies import LedgerQueriesDep
from brokerage_ledger.schemas import SymbolOut

router = APIRouter(prefix="/symbols", tags=["symbols"])


@router.get("", response_model=list[SymbolOut])
def list_symbols(queries: LedgerQueriesDep) -> list[SymbolOut]:
    """All tradable symbols, sorted by ticker."""
    return [SymbolOut.from_view(s) for s in queries.symbols()]
