# src/cmscrm/routes/users_api.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.role import get_roles_by_ids
from src.cmscrm.crud.users import create_user, delete_user, get_user, list_users, update_user
from src.cmscrm.models.user import User
from src.cmscrm.schemas.user import UserCreate, UserOut, UserUpdate
from src.cmscrm.utils.auth import require_admin
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.exceptions import (
    AppError,
    NotFoundError,
    ReferentialIntegrityError,
    UnclassifiedError,
    ValidationError,
)
from src.cmscrm.utils.logger import Action, Resource, log_user_action
from src.cmscrm.utils.responses import api_response
from src.cmscrm.utils.security import hash_password
from src.cmscrm.utils.validation import parse_pagination, parse_payload, total_pages

router = APIRouter(prefix="/api/users", tags=["Users"])

USER_NOT_FOUND = "User not found"
CANNOT_DELETE_SELF = "You cannot delete your own account"


def _user_dict(row: User) -> Dict[str, Any]:
    return UserOut.model_validate(row).model_dump()


async def _resolve_roles(db: AsyncSession, role_ids: List[int]):
    roles = await get_roles_by_ids(db, role_ids)
    missing = sorted(set(role_ids) - {r.id for r in roles})
    if missing:
        raise ValidationError.single("role_ids", f"Unknown role id(s): {missing}")
    return roles


@router.get("")
async def api_list_users(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    page_no, size = parse_pagination(page, limit)
    try:
        rows, total = await list_users(db, q=search, status=status, limit=size, offset=(page_no - 1) * size)
    except Exception as exc:
        raise UnclassifiedError("Failed to retrieve users", exc) from exc
    return api_response("Users retrieved successfully", {
        "items": [_user_dict(r) for r in rows],
        "total": total,
        "page": page_no,
        "limit": size,
        "total_pages": total_pages(total, size),
    })


@router.get("/{user_id}")
async def api_get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_user(db, user_id)
    if not row:
        raise NotFoundError(USER_NOT_FOUND)
    return api_response("User retrieved successfully", _user_dict(row))


@router.post("")
async def api_create_user(
    request: Request,
    body: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    payload = parse_payload(UserCreate, body)
    roles = await _resolve_roles(db, payload.role_ids)

    try:
        user = await create_user(
            db,
            username=payload.username,
            email=str(payload.email),
            password=hash_password(payload.password.get_secret_value()),
            roles=roles,
            status=payload.status,
        )
        user = await get_user(db, user.id, fresh=True)
        data = _user_dict(user)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to create user", exc) from exc

    await log_user_action(
        db, current_user, Action.CREATE, Resource.USER, data["id"],
        details={"username": data["username"], "email": data["email"], "roles": data["roles"]},
        request=request,
    )
    return api_response("User created successfully", data, status_code=201)


@router.put("/{user_id}")
async def api_update_user(
    request: Request,
    user_id: int,
    body: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await get_user(db, user_id)
    if not row:
        raise NotFoundError(USER_NOT_FOUND)

    patch = parse_payload(UserUpdate, body)
    changes: Dict[str, Any] = {}
    audit: Dict[str, Any] = {}
    if patch.username is not None:
        changes["username"] = audit["username"] = patch.username
    if patch.email is not None:
        changes["email"] = audit["email"] = str(patch.email)
    if patch.status is not None:
        changes["status"] = audit["status"] = patch.status
    if patch.password is not None:
        changes["password"] = hash_password(patch.password.get_secret_value())
        audit["password"] = "changed"
    if patch.role_ids is not None:
        roles = await _resolve_roles(db, patch.role_ids)
        changes["roles"] = roles
        audit["roles"] = [r.name for r in roles]

    try:
        await update_user(db, row, changes)
        row = await get_user(db, user_id, fresh=True)
        data = _user_dict(row)
    except AppError:
        raise
    except Exception as exc:
        raise UnclassifiedError("Failed to update user", exc) from exc

    if changes:
        await log_user_action(
            db, current_user, Action.UPDATE, Resource.USER, user_id,
            details=audit, request=request,
        )
    return api_response("User updated successfully", data)


@router.delete("/{user_id}")
async def api_delete_user(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if user_id == current_user.id:
        raise ReferentialIntegrityError(CANNOT_DELETE_SELF)

    row = await get_user(db, user_id)
    if not row:
        raise NotFoundError(USER_NOT_FOUND)
    snapshot = {"username": row.username, "email": row.email}

    try:
        await delete_user(db, row)
    except Exception as exc:
        raise UnclassifiedError("Failed to delete user", exc) from exc

    await log_user_action(
        db, current_user, Action.DELETE, Resource.USER, user_id,
        details=snapshot, request=request,
    )
    return api_response("User deleted successfully")
