"""Per-user serialization of ledger writes.

Two layers keep trades for one user from racing:

1. An in-process lock per user, acquired with a timeout. Trades for
   different users never share a lock and run in parallel.
2. One database transaction per unit of work, run with immediate locking on
   SQLite or SERIALIZABLE isolation elsewhere. This covers writers in other
   processes: the database aborts one side of a read-then-write conflict,
   and that abort is reported as ConcurrencyConflict.

Nothing is cached between units of work. Every "current" value is read
from the store inside the transaction.
"""
import logging
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlmodel import Session

from brokerage_ledger.db.sessions import BUSY_TIMEOUT_OPTION
from brokerage_ledger.ledger.exceptions import (ConcurrencyConflict,
                                                TradeError,
                                                TransientUnavailable)
from brokerage_ledger.ledger.store import LedgerStore

logger = logging.getLogger(__name__)

# SQLSTATE codes: serialization_failure, deadlock_detected, lock_not_available.
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})
_UNAVAILABLE_SQLSTATES = frozenset({"55P03"})
_SQLITE_BUSY_MARKERS = ("database is locked", "database is busy")


def classify_db_error(exc: DBAPIError) -> TradeError | None:
    """Translate a driver error into a retryable TradeError, if it is one.

    Returns None for errors that are not about contention; the caller should
    let those propagate.
    """
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return ConcurrencyConflict(
            "The account was modified concurrently; retry the operation"
        )
    if sqlstate in _UNAVAILABLE_SQLSTATES:
        return TransientUnavailable("The account is busy; retry shortly")
    message = str(orig).lower()
    if any(marker in message for marker in _SQLITE_BUSY_MARKERS):
        return TransientUnavailable("The account is busy; retry shortly")
    return None


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class ConcurrencyGuard:
    """Opens the atomic unit of work for one user's ledger operation."""

    def __init__(self, engine: Engine, *, lock_timeout: float = 5.0) -> None:
        """Initialize with the database engine and the bounded wait.

        Args:
            engine: Engine created by create_ledger_engine (serializable transactions).
            lock_timeout: Seconds to wait for the per-user lock before giving up.
        """
        self._engine = engine
        self._lock_timeout = lock_timeout
        self._registry_lock = threading.Lock()
        self._locks: dict[int, _UserLock] = {}

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def lock_timeout(self) -> float:
        return self._lock_timeout

    def _checkout(self, user_id: int) -> _UserLock:
        with self._registry_lock:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = _UserLock()
            entry.holders += 1
            return entry

    def _checkin(self, user_id: int, entry: _UserLock) -> None:
        with self._registry_lock:
            entry.holders -= 1
            if entry.holders == 0:
                self._locks.pop(user_id, None)

    @contextmanager
    def unit_of_work(self, user_id: int) -> Generator[LedgerStore, None, None]:
        """Yield a LedgerStore inside one transaction, serialized per user.

        Commits when the block exits normally; rolls back every write when it
        raises. The per-user lock and the database lock share one ``lock_timeout``
        budget: the database wait gets whatever the lock wait left over.

        Raises:
            TransientUnavailable: The per-user lock or database lock was not
                acquired in time.
            ConcurrencyConflict: The database aborted the transaction because
                of a concurrent writer.
        """
        started = time.monotonic()
        entry = self._checkout(user_id)
        try:
            if not entry.lock.acquire(timeout=self._lock_timeout):
                logger.warning(
                    "Timed out after %.1fs waiting for ledger lock of user %s",
                    self._lock_timeout,
                    user_id,
                )
                raise TransientUnavailable("The account is busy; retry shortly")
            try:
                remaining = max(0.0, self._lock_timeout - (time.monotonic() - started))
                bind = self._engine.execution_options(**{BUSY_TIMEOUT_OPTION: remaining})
                with Session(bind) as session:
                    try:
                        with session.begin():
                            yield LedgerStore(session)
                    except DBAPIError as exc:
                        mapped = classify_db_error(exc)
                        if mapped is None:
                            raise
                        logger.warning(
                            "Ledger transaction for user %s aborted: %s", user_id, exc.orig
                        )
                        raise mapped from exc
            finally:
                entry.lock.release()
        finally:
            self._checkin(user_id, entry)
