"""
FastAPI Main Application
Admin API for the daily seller settlement batch, with the scheduler
running in the same event loop
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from settlement.api.routes import health, seller_settlements, settlements
from settlement.config import settings
from settlement.core.logging import setup_logging
from settlement.infrastructure.db.database import close_db, init_db
from settlement.scheduler.main import SettlementScheduler

logger = logging.getLogger(__name__)

scheduler: Optional[SettlementScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of database and scheduler
    """
    global scheduler

    setup_logging(settings.LOG_LEVEL)
    logger.info("=" * 60)
    logger.info("🚀 Starting Settlement Service")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    if settings.SCHEDULER_ENABLED:
        scheduler = SettlementScheduler()
        scheduler.start()
        logger.info(
            f"✅ Scheduler started (daily at {settings.SETTLEMENT_CRON_HOUR:02d}:"
            f"{settings.SETTLEMENT_CRON_MINUTE:02d} {settings.TIMEZONE})"
        )
    else:
        logger.info("⏰ Scheduler disabled")

    yield

    logger.info("🛑 Shutting down Settlement Service...")
    if scheduler:
        scheduler.stop()
        scheduler = None

    await close_db()
    logger.info("✅ Database connections closed")


app = FastAPI(
    title="Seller Settlement Service",
    description="Daily seller payout settlement batch and admin API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

app.include_router(health.router, tags=["Health"])
app.include_router(
    settlements.router,
    prefix="/api/v1/admin/settlements",
    tags=["Settlement Admin"],
)
app.include_router(
    seller_settlements.router,
    prefix="/api/v1/settlements",
    tags=["Seller Settlements"],
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("settlement.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
