# src/cmscrm/crud/role.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.models.page import Page
from src.cmscrm.models.security.role import Role, user_roles
from src.cmscrm.schemas.role import RoleCreate
from src.cmscrm.utils.exceptions import ConflictError, ReferentialIntegrityError

logger = logging.getLogger(__name__)

ROLE_NAME_EXISTS = "Role name already exists"
ROLE_HAS_USERS = "Cannot delete role with assigned users"


async def get_role_by_id(db: AsyncSession, role_id: int, fresh: bool = False) -> Optional[Role]:
    stmt = select(Role).where(Role.id == role_id)
    if fresh:
        stmt = stmt.execution_options(populate_existing=True)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def get_roles_by_ids(db: AsyncSession, role_ids: List[int]) -> List[Role]:
    if not role_ids:
        return []
    res = await db.execute(select(Role).where(Role.id.in_(set(role_ids))).order_by(Role.name))
    return list(res.scalars().all())


async def list_roles(
    db: AsyncSession,
    q: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> Tuple[List[Role], int]:
    stmt = select(Role)
    if q:
        like = f"%{q.strip()}%"
        stmt = stmt.where(or_(Role.name.ilike(like), Role.description.ilike(like)))

    total = int((await db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )).scalar_one() or 0)

    page = await db.execute(stmt.order_by(Role.name).limit(limit).offset(offset))
    return list(page.scalars().all()), total


async def _commit_or_conflict(db: AsyncSession, what: str) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Integrity error while %s: %s", what, e)
        raise ConflictError(ROLE_NAME_EXISTS)


async def create_role(db: AsyncSession, payload: RoleCreate, pages: List[Page]) -> Role:
    row = Role(
        name=payload.name,
        description=payload.description,
        permissions=list(payload.permissions),
        pages=list(pages),
    )
    db.add(row)
    await _commit_or_conflict(db, "creating role")
    return row


async def update_role(db: AsyncSession, row: Role, changes: Dict[str, Any]) -> Role:
    if not changes:
        return row
    for field, value in changes.items():
        setattr(row, field, value)
    await _commit_or_conflict(db, f"updating role {row.id}")
    return row


async def set_role_pages(db: AsyncSession, row: Role, pages: List[Page]) -> Role:
    row.pages = list(pages)
    await db.commit()
    return row


async def count_users_for_role(db: AsyncSession, role_id: int) -> int:
    res = await db.execute(
        select(func.count()).select_from(user_roles).where(user_roles.c.role_id == role_id)
    )
    return int(res.scalar_one() or 0)


async def delete_role(db: AsyncSession, row: Role) -> None:
    if await count_users_for_role(db, row.id):
        raise ReferentialIntegrityError(ROLE_HAS_USERS)
    # role_pages rows go with it (secondary of Role.pages)
    await db.delete(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ReferentialIntegrityError(ROLE_HAS_USERS)
