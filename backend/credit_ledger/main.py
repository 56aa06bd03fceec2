"""Credit Ledger API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map LedgerError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: cleaner startup/shutdown pairing
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from credit_ledger.api.error_handlers import register_error_handlers
from credit_ledger.api.routes import (
    admin_topups, credits, health, purchases, recommendations, transactions,
)
from credit_ledger.config import get_settings
from credit_ledger.infrastructure import database
from credit_ledger.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Credit Ledger API started")
    yield
    if database.db_manager:
        await database.db_manager.dispose()
    logger.info("Credit Ledger API shutting down")


app = FastAPI(
    title="Credit Ledger API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(credits.router)
app.include_router(purchases.router)
app.include_router(transactions.router)
app.include_router(recommendations.router)
app.include_router(admin_topups.router)

register_error_handlers(app)
