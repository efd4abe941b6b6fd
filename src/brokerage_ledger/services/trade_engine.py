"""Trade engine: buys, sells and cash movements as atomic units of work.

Each operation runs through the same stages:

    VALIDATING -> FUNDS_OR_SHARES_CHECK -> ACCOUNTING -> PERSISTING
    -> RECORDING -> COMMITTED

Input validation happens before the unit of work is opened. All reads and
writes after it happen inside one ConcurrencyGuard unit, so either every
row lands or none do. Failures are raised as TradeError subclasses with
``stage`` set to where the operation stopped. Anything unexpected is logged
and re-raised as InternalError.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from brokerage_ledger.db.models import (MAX_STORED_INT, AccountTag, Position,
                                        TransactionType)
from brokerage_ledger.ledger.accounting import Holding, accumulate, reduce
from brokerage_ledger.ledger.exceptions import (InsufficientFundsError,
                                                InsufficientSharesError,
                                                InternalError,
                                                PositionNotFoundError,
                                                TradeError,
                                                TradeValidationError,
                                                WalletNotFoundError)
from brokerage_ledger.ledger.guard import ConcurrencyGuard
from brokerage_ledger.ledger.money import Money
from brokerage_ledger.ledger.store import LedgerStore
from brokerage_ledger.utils import normalize_symbol, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Primary keys are plain Integer columns (32-bit on PostgreSQL).
_MAX_ID = 2**31 - 1


class TradeStage(str, Enum):
    VALIDATING = "validating"
    FUNDS_OR_SHARES_CHECK = "funds_or_shares_check"
    ACCOUNTING = "accounting"
    PERSISTING = "persisting"
    RECORDING = "recording"
    COMMITTED = "committed"


# Results


@dataclass(frozen=True)
class PurchaseSummary:
    symbol: str
    name: str
    shares: int
    price_per_share: Money
    total_cost: Money


@dataclass(frozen=True)
class BuyResult:
    new_wallet_balance: Money
    new_brokerage_value: Money
    purchase: PurchaseSummary
    position_id: int
    transaction_id: int


@dataclass(frozen=True)
class SaleSummary:
    symbol: str
    shares: int
    price_per_share: Money
    total_value: Money
    realized_pnl: Money
    remaining_shares: int

    @property
    def position_closed(self) -> bool:
        return self.remaining_shares == 0


@dataclass(frozen=True)
class SellResult:
    new_wallet_balance: Money
    new_brokerage_value: Money
    sale: SaleSummary
    transaction_id: int


@dataclass(frozen=True)
class CashResult:
    """Outcome of a deposit or withdrawal."""

    new_wallet_balance: Money
    amount: Money
    transaction_id: int


# Validation


def _require_positive_int(value: Any, field: str, maximum: int = MAX_STORED_INT) -> int:
    if isinstance(value, bool):
        raise TradeValidationError(f"{field} must be a whole number")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        number = int(value)
    else:
        raise TradeValidationError(
            f"{field} must be a whole number", {"field": field, "value": repr(value)}
        )
    if number <= 0:
        raise TradeValidationError(
            f"{field} must be positive", {"field": field, "value": number}
        )
    if number > maximum:
        raise TradeValidationError(
            f"{field} is too large", {"field": field, "value": number, "maximum": maximum}
        )
    return number


def _require_positive_money(value: Any, field: str) -> Money:
    if value is None or isinstance(value, bool):
        raise TradeValidationError(f"{field} is required", {"field": field})
    try:
        amount = Money.of(value)
    except (TypeError, ValueError) as exc:
        raise TradeValidationError(
            f"{field} must be a finite number", {"field": field, "value": repr(value)}
        ) from exc
    if not amount.is_positive():
        raise TradeValidationError(
            f"{field} must be at least 0.01", {"field": field, "value": str(amount)}
        )
    return _require_storable(amount, field)


def _require_storable(amount: Money, field: str) -> Money:
    if abs(amount.cents) > MAX_STORED_INT:
        raise TradeValidationError(
            f"{field} is too large", {"field": field, "value": str(amount)}
        )
    return amount


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TradeValidationError(f"{field} is required", {"field": field})
    return value.strip()


def _holding_of(position: Position) -> Holding:
    return Holding(
        shares=position.shares,
        avg_price=Money(position.avg_price_cents),
        current_price=Money(position.current_price_cents),
    )


class TradeEngine:
    """Executes ledger operations for one user at a time.

    Holds no account state between calls; balances and positions are read
    from the store at the start of every unit of work.
    """

    def __init__(
        self,
        guard: ConcurrencyGuard,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize with the concurrency guard and a clock for row timestamps."""
        self._guard = guard
        self._clock = clock

    def _execute(self, operation: str, user_id: int, body: Callable[..., T]) -> T:
        """Run ``body(store, advance)`` inside a unit of work and normalize failures."""
        stage = TradeStage.VALIDATING

        def advance(next_stage: TradeStage) -> None:
            nonlocal stage
            stage = next_stage

        try:
            with self._guard.unit_of_work(user_id) as store:
                result = body(store, advance)
        except TradeError as exc:
            if exc.stage is None:
                exc.stage = stage.value
            if exc.retryable:
                logger.warning(
                    "%s for user %s not applied (%s at %s): %s",
                    operation, user_id, exc.kind.value, exc.stage, exc.message,
                )
            else:
                logger.info(
                    "%s for user %s rejected (%s at %s): %s",
                    operation, user_id, exc.kind.value, exc.stage, exc.message,
                )
            raise
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception(
                "%s for user %s failed at %s", operation, user_id, stage.value
            )
            error = InternalError()
            error.stage = stage.value
            raise error from exc
        return result

    def _validate_user(self, user_id: Any) -> int:
        try:
            return _require_positive_int(user_id, "user_id", _MAX_ID)
        except TradeValidationError as exc:
            exc.stage = TradeStage.VALIDATING.value
            raise

    def buy(
        self,
        user_id: int,
        symbol: str,
        name: str,
        price: Money | Decimal | int | float | str,
        shares: int,
    ) -> BuyResult:
        """Buy ``shares`` of ``symbol`` at ``price`` out of the user's wallet.

        Raises:
            TradeValidationError: Malformed symbol, name, price or share count.
            WalletNotFoundError: The user has no wallet row.
            InsufficientFundsError: The wallet cannot cover price x shares.
            ConcurrencyConflict, TransientUnavailable: Safe to retry.
            InternalError: Anything unexpected; nothing was written.
        """
        user_id = self._validate_user(user_id)
        try:
            symbol = normalize_symbol(_require_text(symbol, "symbol"))
            name = _require_text(name, "name")
            price = _require_positive_money(price, "price")
            shares = _require_positive_int(shares, "shares")
            total_cost = _require_storable(price * shares, "total_cost")
        except TradeValidationError as exc:
            exc.stage = TradeStage.VALIDATING.value
            logger.info("buy for user %s rejected: %s", user_id, exc.message)
            raise

        def body(store: LedgerStore, advance: Callable[[TradeStage], None]) -> BuyResult:
            advance(TradeStage.FUNDS_OR_SHARES_CHECK)
            balance = store.latest_wallet_balance(user_id)
            if balance is None:
                raise WalletNotFoundError(user_id)
            if balance < total_cost:
                raise InsufficientFundsError(required=total_cost, available=balance)

            advance(TradeStage.ACCOUNTING)
            position = store.find_position(user_id, symbol)
            holding = accumulate(
                _holding_of(position) if position is not None else None, price, shares
            )
            _require_positive_int(holding.shares, "position shares")
            if position is None:
                position = Position(user_id=user_id, symbol=symbol, name=name, shares=0,
                                    avg_price_cents=0, current_price_cents=0)
            position.shares = holding.shares
            position.avg_price_cents = holding.avg_price.cents
            position.current_price_cents = holding.current_price.cents
            new_balance = balance - total_cost
            new_value = _require_storable(
                store.latest_brokerage_value(user_id) + total_cost, "brokerage value"
            )

            advance(TradeStage.PERSISTING)
            now = self._clock()
            store.upsert_position(position)
            store.append_wallet_balance(user_id, new_balance, now)
            store.append_brokerage_value(user_id, new_value, now)

            advance(TradeStage.RECORDING)
            record = store.append_transaction(
                user_id,
                TransactionType.BUY,
                total_cost,
                AccountTag.WALLET,
                AccountTag.BROKERAGE,
                f"Bought {shares} shares of {symbol} at {price.format()}",
                now,
                symbol=symbol,
                shares=shares,
                price_per_share=price,
            )
            advance(TradeStage.COMMITTED)
            return BuyResult(
                new_wallet_balance=new_balance,
                new_brokerage_value=new_value,
                purchase=PurchaseSummary(
                    symbol=symbol,
                    name=position.name,
                    shares=shares,
                    price_per_share=price,
                    total_cost=total_cost,
                ),
                position_id=position.id,
                transaction_id=record.id,
            )

        result = self._execute("buy", user_id, body)
        logger.info(
            "User %s bought %s %s @ %s (cost %s, wallet %s)",
            user_id, shares, symbol, price, total_cost, result.new_wallet_balance,
        )
        return result

    def sell(self, user_id: int, position_id: int, shares: int) -> SellResult:
        """Sell ``shares`` of a position at its current price into the wallet.

        Raises:
            TradeValidationError: Malformed position id or share count.
            PositionNotFoundError: No such position for this user.
            InsufficientSharesError: More shares requested than held.
            WalletNotFoundError: The user has no wallet row.
            ConcurrencyConflict, TransientUnavailable: Safe to retry.
            InternalError: Anything unexpected; nothing was written.
        """
        user_id = self._validate_user(user_id)
        try:
            position_id = _require_positive_int(position_id, "position_id", _MAX_ID)
            shares = _require_positive_int(shares, "shares")
        except TradeValidationError as exc:
            exc.stage = TradeStage.VALIDATING.value
            logger.info("sell for user %s rejected: %s", user_id, exc.message)
            raise

        def body(store: LedgerStore, advance: Callable[[TradeStage], None]) -> SellResult:
            advance(TradeStage.FUNDS_OR_SHARES_CHECK)
            position = store.get_position(position_id)
            if position is None or position.user_id != user_id:
                raise PositionNotFoundError(position_id)
            if shares > position.shares:
                raise InsufficientSharesError(requested=shares, available=position.shares)

            advance(TradeStage.ACCOUNTING)
            symbol = position.symbol
            outcome = reduce(_holding_of(position), shares)
            _require_storable(outcome.proceeds, "sale value")
            price = Money(position.current_price_cents)

            advance(TradeStage.PERSISTING)
            if outcome.remaining is None:
                store.delete_position(position_id)
                remaining_shares = 0
            else:
                position.shares = outcome.remaining.shares
                store.upsert_position(position)
                remaining_shares = position.shares
            balance = store.latest_wallet_balance(user_id)
            if balance is None:
                raise WalletNotFoundError(user_id)
            now = self._clock()
            new_balance = _require_storable(balance + outcome.proceeds, "wallet balance")
            store.append_wallet_balance(user_id, new_balance, now)
            # Never negative: value accrued at cost, proceeds are at current price.
            new_value = max(
                Money.zero(), store.latest_brokerage_value(user_id) - outcome.proceeds
            )
            store.append_brokerage_value(user_id, new_value, now)

            advance(TradeStage.RECORDING)
            record = store.append_transaction(
                user_id,
                TransactionType.SELL,
                outcome.proceeds,
                AccountTag.BROKERAGE,
                AccountTag.WALLET,
                f"Sold {shares} shares of {symbol} at {price.format()}",
                now,
                symbol=symbol,
                shares=shares,
                price_per_share=price,
            )
            advance(TradeStage.COMMITTED)
            return SellResult(
                new_wallet_balance=new_balance,
                new_brokerage_value=new_value,
                sale=SaleSummary(
                    symbol=symbol,
                    shares=shares,
                    price_per_share=price,
                    total_value=outcome.proceeds,
                    realized_pnl=outcome.realized_pnl,
                    remaining_shares=remaining_shares,
                ),
                transaction_id=record.id,
            )

        result = self._execute("sell", user_id, body)
        logger.info(
            "User %s sold %s %s @ %s (proceeds %s, realized %s)",
            user_id, shares, result.sale.symbol, result.sale.price_per_share,
            result.sale.total_value, result.sale.realized_pnl,
        )
        return result

    def deposit(self, user_id: int, amount: Money | Decimal | int | float | str) -> CashResult:
        """Add cash to the wallet. The first deposit opens the wallet from zero."""
        user_id = self._validate_user(user_id)
        try:
            amount = _require_positive_money(amount, "amount")
        except TradeValidationError as exc:
            exc.stage = TradeStage.VALIDATING.value
            raise

        def body(store: LedgerStore, advance: Callable[[TradeStage], None]) -> CashResult:
            advance(TradeStage.FUNDS_OR_SHARES_CHECK)
            balance = store.latest_wallet_balance(user_id)
            if balance is None:
                balance = Money.zero()
            new_balance = _require_storable(balance + amount, "wallet balance")
            advance(TradeStage.PERSISTING)
            now = self._clock()
            store.append_wallet_balance(user_id, new_balance, now)
            advance(TradeStage.RECORDING)
            record = store.append_transaction(
                user_id,
                TransactionType.DEPOSIT,
                amount,
                AccountTag.EXTERNAL,
                AccountTag.WALLET,
                f"Deposited {amount.format()}",
                now,
            )
            advance(TradeStage.COMMITTED)
            return CashResult(new_wallet_balance=new_balance, amount=amount,
                              transaction_id=record.id)

        result = self._execute("deposit", user_id, body)
        logger.info("User %s deposited %s (wallet %s)", user_id, amount, result.new_wallet_balance)
        return result

    def withdraw(self, user_id: int, amount: Money | Decimal | int | float | str) -> CashResult:
        """Take cash out of the wallet.

        Raises:
            WalletNotFoundError: The user has no wallet row.
            InsufficientFundsError: The wallet holds less than ``amount``.
        """
        user_id = self._validate_user(user_id)
        try:
            amount = _require_positive_money(amount, "amount")
        except TradeValidationError as exc:
            exc.stage = TradeStage.VALIDATING.value
            raise

        def body(store: LedgerStore, advance: Callable[[TradeStage], None]) -> CashResult:
            advance(TradeStage.FUNDS_OR_SHARES_CHECK)
            balance = store.latest_wallet_balance(user_id)
            if balance is None:
                raise WalletNotFoundError(user_id)
            if balance < amount:
                raise InsufficientFundsError(required=amount, available=balance)
            advance(TradeStage.PERSISTING)
            now = self._clock()
            new_balance = balance - amount
            store.append_wallet_balance(user_id, new_balance, now)
            advance(TradeStage.RECORDING)
            record = store.append_transaction(
                user_id,
                TransactionType.WITHDRAWAL,
                amount,
                AccountTag.WALLET,
                AccountTag.EXTERNAL,
                f"Withdrew {amount.format()}",
                now,
            )
            advance(TradeStage.COMMITTED)
            return CashResult(new_wallet_balance=new_balance, amount=amount,
                              transaction_id=record.id)

        result = self._execute("withdraw", user_id, body)
        logger.info("User %s withdrew %s (wallet %s)", user_id, amount, result.new_wallet_balance)
        return result
