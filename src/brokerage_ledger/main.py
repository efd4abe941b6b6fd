"""Main module for the brokerage ledger service."""
import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from sqlalchemy.engine import Engine

from brokerage_ledger import __version__
from brokerage_ledger.db import sessions
from brokerage_ledger.dependencies import wire_services
from brokerage_ledger.routers import (ledger_router, symbols_router,
                                      trade_router)

logger = logging.getLogger(__name__)


def create_app(
    engine: Engine | None = None,
    *,
    lock_timeout: float = sessions.TRADE_LOCK_TIMEOUT,
) -> FastAPI:
    """Build the FastAPI app over ``engine`` (default: the DATABASE_URL engine)."""
    db_engine = engine if engine is not None else sessions.engine

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        """Create tables and wire services at startup; dispose the pool on shutdown."""
        sessions.init_db(db_engine)
        wire_services(fastapi_app, db_engine, lock_timeout=lock_timeout)
        logger.info("Brokerage ledger ready on %s", db_engine.url.render_as_string(hide_password=True))

        yield

        db_engine.dispose()

    fastapi_app = FastAPI(
        title="Brokerage Ledger",
        description="Wallet, positions and trades kept consistent per user",
        version=__version__,
        lifespan=lifespan,
    )

    fastapi_app.include_router(trade_router)
    fastapi_app.include_router(ledger_router)
    fastapi_app.include_router(symbols_router)

    @fastapi_app.get("/")
    def health():
        """Return health check status."""
        return {"status": "ok"}

    return fastapi_app


app = create_app()


def run():
    """Run the server (uvicorn). Entry point for `brokerage-start`."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "brokerage_ledger.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )
