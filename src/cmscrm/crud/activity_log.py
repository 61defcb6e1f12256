# src/cmscrm/crud/activity_log.py
from __future__ import annotations

from typing import Any, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.models.activity_log import ActivityLog


async def create_activity_log(db: AsyncSession, **fields: Any) -> ActivityLog:
    row = ActivityLog(**fields)
    db.add(row)
    await db.commit()
    return row


async def list_activity_logs(
    db: AsyncSession,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: int = 10,
    offset: int = 0,
) -> Tuple[List[ActivityLog], int]:
    filters = []
    if action:
        filters.append(ActivityLog.action == action.strip().upper())
    if resource_type:
        filters.append(ActivityLog.resource_type == resource_type.strip().upper())
    if user_id is not None:
        filters.append(ActivityLog.user_id == user_id)

    total = int((await db.execute(
        select(func.count()).select_from(ActivityLog).where(*filters)
    )).scalar_one() or 0)

    res = await db.execute(
        select(ActivityLog)
        .where(*filters)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(res.scalars().all()), total

