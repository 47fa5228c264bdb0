"""Jornada scoping: coordinators only manage the jornadas they are assigned to."""

from typing import List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.models import Jornada
from app.db.session import get_session_factory


async def managed_jornada_codes(session_factory: async_sessionmaker, manager_id: str) -> List[str]:
    async with session_factory() as session:
        result = await session.execute(
            select(Jornada.code).where(Jornada.manager_id == manager_id).order_by(Jornada.code)
        )
        return list(result.scalars().all())


async def get_jornada_scope(
    current_user: CurrentUser = Depends(get_current_user),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> Optional[List[str]]:
    """Jornada codes the caller may touch; None when unrestricted."""
    if not current_user.is_coordinator:
        return None
    return await managed_jornada_codes(session_factory, current_user.id)
