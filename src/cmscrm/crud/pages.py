# src/cmscrm/crud/pages.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.models.page import Page
from src.cmscrm.models.security.role import role_pages, user_roles
from src.cmscrm.schemas.page import PageCreate
from src.cmscrm.utils.exceptions import ConflictError, ReferentialIntegrityError

logger = logging.getLogger(__name__)

PAGE_URL_EXISTS = "Page URL already exists"
PAGE_HAS_ROLES = "Cannot delete page with assigned roles"


def _filtered(stmt, search: Optional[str], status: Optional[str]):
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Page.name.ilike(like), Page.url.ilike(like)))
    if status:
        stmt = stmt.where(Page.status == status.strip().lower())
    return stmt


# -------- Get one page --------
async def get_page(db: AsyncSession, page_id: int, fresh: bool = False) -> Optional[Page]:
    """`fresh=True` re-reads the row even if the session already holds it."""
    stmt = select(Page).where(Page.id == page_id)
    if fresh:
        stmt = stmt.execution_options(populate_existing=True)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


# -------- List pages --------
async def list_pages(
    db: AsyncSession,
    search: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> Tuple[List[Page], int]:
    count_stmt = _filtered(select(func.count()).select_from(Page), search, status)
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    stmt = _filtered(select(Page), search, status).order_by(Page.created_at.desc(), Page.id.desc())
    res = await db.execute(stmt.limit(limit).offset(offset))
    return list(res.scalars().all()), total


async def list_pages_simple(db: AsyncSession, active_only: bool = True) -> List[Page]:
    stmt = select(Page)
    if active_only:
        stmt = stmt.where(Page.status == "active")
    res = await db.execute(stmt.order_by(Page.name.asc()))
    return list(res.scalars().all())


async def get_pages_by_ids(db: AsyncSession, page_ids: List[int]) -> List[Page]:
    if not page_ids:
        return []
    res = await db.execute(select(Page).where(Page.id.in_(set(page_ids))))
    return list(res.scalars().all())


# -------- Create page --------
async def create_page(
    db: AsyncSession,
    payload: PageCreate,
    icon: Optional[str] = None,
    created_by: Optional[int] = None,
) -> Page:
    row = Page(
        name=payload.name,
        url=payload.url,
        icon=icon,
        is_external=payload.is_external,
        status=payload.status,
        created_by=created_by,
    )
    db.add(row)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Integrity error while creating page %r: %s", payload.url, e)
        raise ConflictError(PAGE_URL_EXISTS)
    return row


# -------- Update page --------
async def update_page(db: AsyncSession, row: Page, changes: Dict[str, Any]) -> Page:
    if not changes:
        return row

    page_id = row.id
    for field, value in changes.items():
        setattr(row, field, value)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Integrity error while updating page %s: %s", page_id, e)
        raise ConflictError(PAGE_URL_EXISTS)
    return row


# -------- Delete page --------
async def count_role_assignments(db: AsyncSession, page_id: int) -> int:
    res = await db.execute(
        select(func.count()).select_from(role_pages).where(role_pages.c.page_id == page_id)
    )
    return int(res.scalar_one() or 0)


async def delete_page(db: AsyncSession, page_id: int) -> bool:
    """Refuses while any role still grants the page."""
    if await count_role_assignments(db, page_id):
        raise ReferentialIntegrityError(PAGE_HAS_ROLES)

    try:
        result = await db.execute(delete(Page).where(Page.id == page_id))
        await db.commit()
    except IntegrityError:
        # a role picked the page up between the check and the delete
        await db.rollback()
        raise ReferentialIntegrityError(PAGE_HAS_ROLES)
    return (result.rowcount or 0) > 0


# -------- Role-based lookups --------
def _user_pages_stmt(user_id: int):
    return (
        select(Page)
        .join(role_pages, role_pages.c.page_id == Page.id)
        .join(user_roles, user_roles.c.role_id == role_pages.c.role_id)
        .where(user_roles.c.user_id == user_id, Page.status == "active")
    )


async def get_pages_by_user(db: AsyncSession, user_id: int) -> List[Page]:
    """Union of the pages granted by every role the user holds."""
    stmt = _user_pages_stmt(user_id).distinct().order_by(Page.name.asc(), Page.id.asc())
    res = await db.execute(stmt)
    return list(res.scalars().unique().all())


async def check_page_access(db: AsyncSession, user_id: int, page_url: str) -> bool:
    raw = (page_url or "").strip()
    if not raw:
        return False
    candidates = {raw, "/" + raw.lstrip("/")}
    stmt = _user_pages_stmt(user_id).where(Page.url.in_(candidates)).limit(1)
    res = await db.execute(stmt)
    return res.scalars().first() is not None


async def get_page_stats(db: AsyncSession) -> Dict[str, int]:
    stmt = select(
        func.count(Page.id),
        func.sum(case((Page.status == "active", 1), else_=0)),
        func.sum(case((Page.status == "inactive", 1), else_=0)),
        func.sum(case((Page.is_external.is_(True), 1), else_=0)),
    )
    total, active, inactive, external = (await db.execute(stmt)).one()
    total = int(total or 0)
    external = int(external or 0)
    return {
        "total": total,
        "active": int(active or 0),
        "inactive": int(inactive or 0),
        "external": external,
        "internal": total - external,
    }
