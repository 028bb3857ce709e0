"""
Registry Service

Read-only access to teams, judges and event settings. These tables are
maintained elsewhere (registration, admin panel); the queue only reads them.
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackjudge.orm.event_settings import EventSettings
from hackjudge.orm.team import Team
from hackjudge.orm.user import User

logger = logging.getLogger(__name__)

DEFAULT_ROUND = 1


async def list_teams(db: AsyncSession, division: Optional[str] = None) -> List[Team]:
    query = select(Team)
    if division is not None:
        query = query.where(Team.division == division)
    result = await db.execute(query.order_by(Team.name))
    return list(result.scalars().all())


async def get_team(db: AsyncSession, team_name: str) -> Optional[Team]:
    result = await db.execute(select(Team).where(Team.name == team_name))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_event_settings(db: AsyncSession) -> Optional[EventSettings]:
    result = await db.execute(select(EventSettings).order_by(EventSettings.id).limit(1))
    return result.scalar_one_or_none()


async def get_current_round(db: AsyncSession) -> int:
    settings = await get_event_settings(db)
    if settings is None or not settings.current_round:
        return DEFAULT_ROUND
    return settings.current_round


async def is_judging_locked(db: AsyncSession) -> bool:
    settings = await get_event_settings(db)
    return bool(settings and settings.judging_locked)


async def is_round_locked(db: AsyncSession, round_number: int) -> bool:
    settings = await get_event_settings(db)
    if settings is None:
        return False
    return settings.is_round_locked(round_number)
