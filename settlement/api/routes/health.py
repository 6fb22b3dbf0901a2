from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.infrastructure.db.database import get_db

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except SQLAlchemyError:
        db_connected = False

    return {
        "status": "ready" if db_connected else "not_ready",
        "db_connected": db_connected,
    }
