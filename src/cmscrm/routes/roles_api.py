# src/cmscrm/routes/roles_api.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.pages import get_pages_by_ids
from src.cmscrm.crud.role import (
    create_role,
    delete_role,
    get_role_by_id,
    list_roles,
    set_role_pages,
    update_role,
)
from src.cmscrm.models.user import User
from src.cmscrm.schemas.role import RoleCreate, RoleDetail, RoleOut, RolePagesUpdate, RoleUpdate
from src.cmscrm.utils.auth import require_admin
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.exceptions import AppError, NotFoundError, UnclassifiedError, ValidationError
from src.cmscrm.utils.logger import Action, Resource, log_user_action
from src.cmscrm.utils.responses import api_response
from src.cmscrm.utils.validation import parse_pagination, parse_payload, total_pages

router = APIRouter(prefix="/api/roles", tags=["Roles"])

ROLE_NOT_FOUND = "Role not found"


def _role_detail(row) -> Dict[str, Any]:
    return RoleDetail.model_validate(row).model_dump()


async def _resolve_pages(db: AsyncSession, page_ids: List[int]):
    pages = await get_pages_by_ids(db, page_ids)
    missing = sorted(set(page_ids) - {p.id for p in pages})
    if missing:
        raise ValidationError.single("page_ids", f"Unknown page id(s): {missing}")
    return pages


@router.get("")
async def api_list_roles(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    page_no, size = parse_pagination(page, limit)
    try:
        rows, total = await list_roles(db, q=search, limit=size, offset=(page_no - 1) * size)
    except Exception as exc:
        raise UnclassifiedError("Failed to retrieve roles", exc) from exc
    return api_response("Roles retrieved successfully", {
        "items": [RoleOut.model_validate(r).model_dump() for r in rows],
        "total": total,
        "page": page_no,
        "limit": size,
        "total_pages": total_pages(total, size),
    })


@router.get("/{role_id}")
async def api_get_role(
    role_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_role_by_id(db, role_id)
    if not row:
        raise NotFoundError(ROLE_NOT_FOUND)
    return api_response("Role retrieved successfully", _role_detail(row))


@router.post("")
async def api_create_role(
    request: Request,
    body: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    payload = parse_payload(RoleCreate, body)
    pages = await _resolve_pages(db, payload.page_ids)

    try:
        row = await create_role(db, payload, pages)
        row = await get_role_by_id(db, row.id, fresh=True)
        data = _role_detail(row)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to create role", exc) from exc

    await log_user_action(
        db, current_user, Action.CREATE, Resource.ROLE, data["id"],
        details={"name": payload.name, "page_ids": sorted(p["id"] for p in data["pages"])},
        request=request,
    )
    return api_response("Role created successfully", data, status_code=201)


@router.put("/{role_id}")
async def api_update_role(
    request: Request,
    role_id: int,
    body: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_role_by_id(db, role_id)
    if not row:
        raise NotFoundError(ROLE_NOT_FOUND)

    changes = {k: v for k, v in parse_payload(RoleUpdate, body).model_dump().items() if v is not None}

    try:
        await update_role(db, row, changes)
        row = await get_role_by_id(db, role_id, fresh=True)
        data = _role_detail(row)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to update role", exc) from exc

    if changes:
        await log_user_action(
            db, current_user, Action.UPDATE, Resource.ROLE, role_id,
            details=changes, request=request,
        )
    return api_response("Role updated successfully", data)


@router.put("/{role_id}/pages")
async def api_set_role_pages(
    request: Request,
    role_id: int,
    body: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_role_by_id(db, role_id)
    if not row:
        raise NotFoundError(ROLE_NOT_FOUND)

    payload = parse_payload(RolePagesUpdate, body)
    pages = await _resolve_pages(db, payload.page_ids)

    try:
        await set_role_pages(db, row, pages)
        row = await get_role_by_id(db, role_id, fresh=True)
        data = _role_detail(row)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to assign pages", exc) from exc

    await log_user_action(
        db, current_user, Action.UPDATE, Resource.ROLE, role_id,
        details={"page_ids": sorted(p.id for p in pages)}, request=request,
    )
    return api_response("Role pages updated successfully", data)


@router.delete("/{role_id}")
async def api_delete_role(
    request: Request,
    role_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_role_by_id(db, role_id)
    if not row:
        raise NotFoundError(ROLE_NOT_FOUND)
    snapshot = {"name": row.name}

    try:
        await delete_role(db, row)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to delete role", exc) from exc

    await log_user_action(
        db, current_user, Action.DELETE, Resource.ROLE, role_id,
        details=snapshot, request=request,
    )
    return api_response("Role deleted successfully")
