from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.base import get_session
from app.core.db_services import CardService


async def get_card_service(
    session: AsyncSession = Depends(get_session),
) -> CardService:
    """Card service bound to the request's session."""
    return CardService(session)
