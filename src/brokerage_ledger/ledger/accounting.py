"""Average-cost position accounting.

Pure functions over a Holding (shares, average price, last trade price);
they never touch the database. The trade engine copies the result onto the
Position row, or deletes the row when a sale closes it.
"""
from dataclasses import dataclass

from brokerage_ledger.ledger.money import Money


@dataclass(frozen=True)
class Holding:
    shares: int
    avg_price: Money
    current_price: Money

    def __post_init__(self) -> None:
        if self.shares <= 0:
            raise ValueError(f"Holding must have positive shares, got {self.shares}")

    @property
    def cost_basis(self) -> Money:
        return self.avg_price * self.shares

    @property
    def market_value(self) -> Money:
        return self.current_price * self.shares

    @property
    def unrealized_pnl(self) -> Money:
        return self.market_value - self.cost_basis


@dataclass(frozen=True)
class SaleOutcome:
    """Result of reducing a holding.

    Attributes:
        remaining: The holding after the sale, or None when it was fully sold.
        proceeds: current_price x shares sold.
        realized_pnl: (current_price - avg_price) x shares sold; reported only.
    """

    remaining: Holding | None
    proceeds: Money
    realized_pnl: Money

    @property
    def closed(self) -> bool:
        return self.remaining is None


def accumulate(existing: Holding | None, price: Money, shares: int) -> Holding:
    """Apply a buy of ``shares`` at ``price`` to a holding.

    A new holding starts at the trade price. Buying into an existing holding
    recomputes the volume-weighted average from the stored average, rounding
    once, and marks the holding at the trade price.
    """
    if shares <= 0:
        raise ValueError(f"shares must be positive, got {shares}")
    if existing is None:
        return Holding(shares=shares, avg_price=price, current_price=price)
    total_shares = existing.shares + shares
    total_cost = existing.avg_price * existing.shares + price * shares
    return Holding(
        shares=total_shares,
        avg_price=total_cost / total_shares,
        current_price=price,
    )


def reduce(existing: Holding, shares: int) -> SaleOutcome:
    """Apply a sale of ``shares`` at the holding's current price.

    The average price is unchanged by a sale. Selling every share closes the
    holding. Overselling is rejected by the caller before this is reached.
    """
    if shares <= 0:
        raise ValueError(f"shares must be positive, got {shares}")
    if shares > existing.shares:
        raise ValueError(f"cannot sell {shares} of {existing.shares} shares")
    proceeds = existing.current_price * shares
    realized = (existing.current_price - existing.avg_price) * shares
    remaining_shares = existing.shares - shares
    remaining = (
        Holding(
            shares=remaining_shares,
            avg_price=existing.avg_price,
            current_price=existing.current_price,
        )
        if remaining_shares > 0
        else None
    )
    return SaleOutcome(remaining=remaining, proceeds=proceeds, realized_pnl=realized)
