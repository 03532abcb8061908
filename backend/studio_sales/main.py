"""Studio Sales API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Error handlers map StudioSalesError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup; the periodic audit starts only when its
      interval is positive and stops before the engine is disposed

Design Decisions:
    - Lifespan over @app.on_event: cleanup ordering is explicit
    - The audit trigger lives on app.state so the debounced refresh route shares it
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import studio_sales.infrastructure.database as database
from studio_sales.api.error_handlers import register_error_handlers
from studio_sales.api.routes import audit, bookings, duplicates, health, outcomes
from studio_sales.config import get_settings
from studio_sales.infrastructure.observability import setup_logging
from studio_sales.services.audit_trigger import AuditTrigger
from studio_sales.services.auditor import Auditor

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
    trigger = AuditTrigger(
        Auditor(database.db_manager.session_factory, settings),
        interval_minutes=settings.audit_interval_minutes,
        debounce_seconds=settings.audit_debounce_seconds,
    )
    trigger.start()
    app.state.audit_trigger = trigger
    logger.info("Studio Sales API started")
    yield
    logger.info("Studio Sales API shutting down")
    await trigger.stop()
    await database.db_manager.dispose()


app = FastAPI(title="Studio Sales API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(outcomes.router)
app.include_router(duplicates.router)
app.include_router(audit.router)
app.include_router(bookings.router)

register_error_handlers(app)
