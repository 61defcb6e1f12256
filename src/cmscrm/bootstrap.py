# src/cmscrm/bootstrap.py
"""Create tables and seed the fixed role set plus a first super admin."""
from __future__ import annotations

import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from src.cmscrm import models  # noqa: F401
from src.cmscrm.crud.users import create_user, get_user_by_email
from src.cmscrm.models.security.role import Role
from src.cmscrm.models.user import User
from src.cmscrm.utils.database import Base
from src.cmscrm.utils.navigation import ROLE_DISPLAY_NAMES, RoleTag
from src.cmscrm.utils.security import hash_password

logger = logging.getLogger(__name__)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_roles(db: AsyncSession) -> Dict[RoleTag, Role]:
    """Idempotent: existing roles are left as they are."""
    existing = {r.name: r for r in (await db.execute(select(Role))).scalars().all()}
    out: Dict[RoleTag, Role] = {}
    for tag, label in ROLE_DISPLAY_NAMES.items():
        row = existing.get(tag.value)
        if row is None:
            row = Role(name=tag.value, description=label, permissions=[])
            db.add(row)
            logger.info("Seeding role %s", tag.value)
        out[tag] = row
    await db.commit()
    return out


async def seed_admin(
    db: AsyncSession,
    email: str,
    password: str,
    username: str = "admin",
) -> Optional[User]:
    """Returns the new user, or None when the email is already registered."""
    email = email.strip().lower()
    if await get_user_by_email(db, email):
        logger.info("Admin %s already exists; skipping", email)
        return None
    roles = await seed_roles(db)
    user = await create_user(
        db,
        username=username,
        email=email,
        password=hash_password(password),
        roles=[roles[RoleTag.SUPER_ADMIN]],
    )
    logger.info("Created super admin %s", email)
    return user
