"""
Create the scheduling tables when they do not exist yet.

Runs at startup when AUTO_CREATE_TABLES is enabled, or standalone:
    python -m app.db.init_db
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

# Import all models so they are registered on Base.metadata
import app.core.models  # noqa: F401
from app.db.session import Base, engine

_log = logging.getLogger("scheduling.db")


async def create_tables(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _log.info("Scheduling tables ensured (%d tables)", len(Base.metadata.tables))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(create_tables())
