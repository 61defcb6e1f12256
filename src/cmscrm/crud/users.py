# src/cmscrm/crud/users.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.models.security.role import Role
from src.cmscrm.models.user import User
from src.cmscrm.utils.exceptions import ConflictError
from src.cmscrm.utils.timezone import now_local

logger = logging.getLogger(__name__)

USER_EXISTS = "Username or email already exists"


# -----------------------
# Basic getters / checks
# -----------------------
async def get_user(db: AsyncSession, user_id: int, fresh: bool = False) -> Optional[User]:
    stmt = select(User).where(User.id == user_id)
    if fresh:
        stmt = stmt.execution_options(populate_existing=True)
    return await db.scalar(stmt)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    return await db.scalar(select(User).where(User.email == (email or "").strip().lower()))


# -----------------------
# List + search + paging
# -----------------------
async def list_users(
    db: AsyncSession,
    q: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> Tuple[List[User], int]:
    stmt = select(User)
    if q:
        like = f"%{q.strip()}%"
        stmt = stmt.where(or_(User.username.ilike(like), User.email.ilike(like)))
    if status:
        stmt = stmt.where(User.status == status.strip().lower())

    total = int((await db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )).scalar_one() or 0)

    page_res = await db.execute(stmt.order_by(User.username).limit(limit).offset(offset))
    return list(page_res.scalars().all()), total


# -----------------------
# Create / Update / Delete
# -----------------------
async def _commit_or_conflict(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Integrity error on users: %s", e)
        raise ConflictError(USER_EXISTS)


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    email: str,
    password: str,    # already hashed
    roles: List[Role],
    status: str = "active",
) -> User:
    user = User(
        username=username,
        email=email,
        password=password,
        status=status,
        roles=list(roles),
    )
    db.add(user)
    await _commit_or_conflict(db)
    return user


async def update_user(db: AsyncSession, row: User, changes: Dict[str, Any]) -> User:
    """`changes` may carry `roles` (list of Role) which replaces the set."""
    if not changes:
        return row
    for field, value in changes.items():
        setattr(row, field, value)
    await _commit_or_conflict(db)
    return row


async def delete_user(db: AsyncSession, row: User) -> None:
    # user_roles rows go with it (secondary of User.roles)
    await db.delete(row)
    await db.commit()


async def touch_last_login(db: AsyncSession, row: User) -> None:
    row.last_login = now_local()
    await db.commit()
