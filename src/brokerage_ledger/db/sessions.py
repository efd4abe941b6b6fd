"""Database engine configuration and schema creation."""
import os

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, create_engine

from brokerage_ledger.db.models import (  # noqa: F401  # pylint: disable=unused-import
    BrokerageValue, LedgerTransaction, Position, Symbol, User, WalletBalance)

_DEFAULT_URL = "sqlite:///./brokerage.db"
DATABASE_URL = os.getenv("DATABASE_URL", _DEFAULT_URL)
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

# Seconds a trade may wait for its atomic unit (per-user lock and database lock).
TRADE_LOCK_TIMEOUT = float(os.getenv("TRADE_LOCK_TIMEOUT", "5.0"))

# Execution options read when a SQLite transaction begins.
READ_ONLY_OPTION = "ledger_read_only"
BUSY_TIMEOUT_OPTION = "ledger_busy_timeout"


def _use_immediate_transactions(engine: Engine, lock_timeout: float) -> None:
    """Make SQLite write transactions take the write lock when they begin.

    pysqlite defers BEGIN until the first write, so two transactions could both
    read the same latest balance before either writes. BEGIN IMMEDIATE makes
    the second one wait for the busy timeout instead. Connections bound with
    ``READ_ONLY_OPTION`` get a deferred BEGIN and never take the write lock.
    ``BUSY_TIMEOUT_OPTION`` overrides the wait (seconds) for one transaction.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # noqa: ANN001
        options = conn.get_execution_options()
        timeout = options.get(BUSY_TIMEOUT_OPTION, lock_timeout)
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {max(0, int(timeout * 1000))}")
        conn.exec_driver_sql("BEGIN" if options.get(READ_ONLY_OPTION) else "BEGIN IMMEDIATE")


def read_only(engine: Engine) -> Engine:
    """The same engine and pool, for sessions that only read."""
    return engine.execution_options(**{READ_ONLY_OPTION: True})


def create_ledger_engine(
    url: str = DATABASE_URL,
    *,
    echo: bool = SQL_ECHO,
    lock_timeout: float = TRADE_LOCK_TIMEOUT,
) -> Engine:
    """Create an engine whose transactions are serializable per account.

    SQLite gets immediate (write-locking) transactions; other backends run at
    SERIALIZABLE isolation so read-then-write races abort one side.
    """
    if make_url(url).get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": lock_timeout},
        )
        _use_immediate_transactions(engine, lock_timeout)
        return engine
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        isolation_level="SERIALIZABLE",
    )


engine = create_ledger_engine()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables. Safe to call on startup (idempotent for existing tables)."""
    SQLModel.metadata.create_all(bind or engine)
