import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db

router = APIRouter(tags=["health"])

log = logging.getLogger("scheduling.db")


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/database-test")
async def database_test(db: AsyncSession = Depends(get_db)):
    """Ping the database with a trivial query."""
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        log.error("Database ping failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"ok": False, "status": "disconnected", "error": str(exc)},
        )
    log.info("Database ping succeeded")
    return {"ok": True, "status": "connected"}
