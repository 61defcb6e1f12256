# src/cmscrm/routes/pages_api.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.pages import (
    check_page_access,
    create_page,
    delete_page,
    get_page,
    get_page_stats,
    get_pages_by_user,
    list_pages,
    list_pages_simple,
    update_page,
)
from src.cmscrm.models.user import User
from src.cmscrm.schemas.page import PageCreate, PageList, PageOut, PageSimple, PageStats, PageUpdate
from src.cmscrm.utils.auth import get_current_user, require_admin
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.exceptions import AppError, NotFoundError, UnclassifiedError
from src.cmscrm.utils.logger import Action, Resource, log_user_action
from src.cmscrm.utils.media import delete_media_file, staged_icon
from src.cmscrm.utils.responses import api_response
from src.cmscrm.utils.validation import parse_pagination, parse_payload, to_bool, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pages", tags=["Pages"])

PAGE_NOT_FOUND = "Page not found"


def _page_dict(row) -> dict:
    return PageOut.model_validate(row).model_dump()


# -----------------------------
# LIST
# -----------------------------
@router.get("")
async def api_list_pages(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    page_no, size = parse_pagination(page, limit)
    try:
        rows, total = await list_pages(
            db, search=search, status=status, limit=size, offset=(page_no - 1) * size
        )
    except Exception as exc:
        raise UnclassifiedError("Failed to retrieve pages", exc) from exc

    data = PageList(
        items=[PageOut.model_validate(r) for r in rows],
        total=total,
        page=page_no,
        limit=size,
        total_pages=total_pages(total, size),
    )
    return api_response("Pages retrieved successfully", data.model_dump())


# -----------------------------
# STATIC PATHS (must precede /{page_id})
# -----------------------------
@router.get("/my")
async def api_my_pages(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        rows = await get_pages_by_user(db, current_user.id)
    except Exception as exc:
        raise UnclassifiedError("Failed to retrieve user pages", exc) from exc
    return api_response("User pages retrieved successfully", [_page_dict(r) for r in rows])


@router.get("/stats")
async def api_page_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        stats = PageStats(**await get_page_stats(db))
    except Exception as exc:
        raise UnclassifiedError("Failed to retrieve page statistics", exc) from exc
    return api_response("Page statistics retrieved successfully", stats.model_dump())


@router.get("/simple")
async def api_pages_simple(
    active_only: Optional[str] = Query("true"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        rows = await list_pages_simple(db, active_only=to_bool(active_only, default=True))
    except Exception as exc:
        raise UnclassifiedError("Failed to retrieve pages", exc) from exc
    return api_response(
        "Pages retrieved successfully",
        [PageSimple.model_validate(r).model_dump() for r in rows],
    )


@router.get("/access/{page_url:path}")
async def api_check_access(
    page_url: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        has_access = await check_page_access(db, current_user.id, page_url)
    except Exception as exc:
        raise UnclassifiedError("Failed to check page access", exc) from exc
    return api_response(
        "Page access checked successfully",
        {"user_id": current_user.id, "page_url": page_url, "has_access": has_access},
    )


# -----------------------------
# GET ONE
# -----------------------------
@router.get("/{page_id}")
async def api_get_page(
    page_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await get_page(db, page_id)
    if not row:
        raise NotFoundError(PAGE_NOT_FOUND)
    return api_response("Page retrieved successfully", _page_dict(row))


# -----------------------------
# CREATE (multipart, optional icon)
# -----------------------------
@router.post("")
async def api_create_page(
    request: Request,
    name: Optional[str] = Form(None),
    url: Optional[str] = Form(None),
    is_external: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    icon: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    payload = parse_payload(PageCreate, {
        "name": name,
        "url": url,
        "is_external": is_external if is_external is not None else False,
        "status": status or "active",
    })

    try:
        async with staged_icon(icon) as icon_url:
            row = await create_page(db, payload, icon=icon_url, created_by=current_user.id)
        # re-read so defaults and timestamps come from the database
        row = await get_page(db, row.id, fresh=True)
        data = _page_dict(row)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to create page", exc) from exc

    await log_user_action(
        db, current_user, Action.CREATE, Resource.PAGE, data["id"],
        details={"name": payload.name, "url": payload.url, "is_external": payload.is_external},
        request=request,
    )
    return api_response("Page created successfully", data, status_code=201)


# -----------------------------
# UPDATE (sparse patch, optional icon replace)
# -----------------------------
@router.put("/{page_id}")
async def api_update_page(
    request: Request,
    page_id: int,
    name: Optional[str] = Form(None),
    url: Optional[str] = Form(None),
    is_external: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    icon: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_page(db, page_id)
    if not row:
        raise NotFoundError(PAGE_NOT_FOUND)

    patch = parse_payload(PageUpdate, {
        "name": name,
        "url": url,
        "is_external": is_external,
        "status": status,
    })
    changes = patch.changes()
    old_icon = row.icon

    try:
        async with staged_icon(icon) as icon_url:
            if icon_url:
                changes["icon"] = icon_url
            row = await update_page(db, row, changes)
        if icon_url and old_icon and old_icon != icon_url:
            delete_media_file(old_icon)
        row = await get_page(db, page_id, fresh=True)
        data = _page_dict(row)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to update page", exc) from exc

    if changes:
        await log_user_action(
            db, current_user, Action.UPDATE, Resource.PAGE, page_id,
            details=changes, request=request,
        )
    return api_response("Page updated successfully", data)


# -----------------------------
# DELETE
# -----------------------------
@router.delete("/{page_id}")
async def api_delete_page(
    request: Request,
    page_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_page(db, page_id)
    if not row:
        raise NotFoundError(PAGE_NOT_FOUND)

    snapshot = {"name": row.name, "url": row.url}
    icon = row.icon

    try:
        deleted = await delete_page(db, page_id)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to delete page", exc) from exc
    if not deleted:
        raise UnclassifiedError("Failed to delete page")

    if icon:
        delete_media_file(icon)

    await log_user_action(
        db, current_user, Action.DELETE, Resource.PAGE, page_id,
        details=snapshot, request=request,
    )
    return api_response("Page deleted successfully")
