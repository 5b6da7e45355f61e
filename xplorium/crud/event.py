from datetime import datetime
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium.models.event import Event, EventStatus


async def count_upcoming(db: AsyncSession, *, now: datetime) -> int:
    result = await db.execute(
        select(func.count(Event.id)).filter(
            Event.status == EventStatus.PUBLISHED, Event.date >= now
        )
    )
    return int(result.scalar_one())


async def get_upcoming(db: AsyncSession, *, now: datetime, limit: int = 5) -> List[Event]:
    result = await db.execute(
        select(Event)
        .filter(Event.status == EventStatus.PUBLISHED, Event.date >= now)
        .order_by(Event.date.asc())
        .limit(limit)
    )
    return list(result.scalars().all())
