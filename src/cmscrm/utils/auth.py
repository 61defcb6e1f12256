# src/cmscrm/utils/auth.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.users import get_user, get_user_by_email
from src.cmscrm.models.user import User
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.exceptions import AuthenticationError, PermissionDeniedError
from src.cmscrm.utils.navigation import RoleTag, parse_role
from src.cmscrm.utils.security import decode_access_token, verify_password

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({RoleTag.SUPER_ADMIN, RoleTag.ADMIN})


def _extract_bearer(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header:
        parts = auth_header.split(" ", 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1].strip() or None
    return None


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password):
        return None
    if (user.status or "").lower() != "active":
        logger.warning("Login attempt for inactive user id=%s", user.id)
        return None
    return user


# -------------------------------------------------------------------
# Protected dependencies
# -------------------------------------------------------------------
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    token = _extract_bearer(request)
    if not token:
        raise AuthenticationError("Access token required")

    payload = decode_access_token(token)
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.isdigit():
        raise AuthenticationError("Invalid token payload")

    user = await get_user(db, int(sub))
    if not user:
        raise AuthenticationError("User not found")
    if (user.status or "").lower() != "active":
        raise AuthenticationError("Account is inactive")
    return user


def is_admin(user: User) -> bool:
    return any(parse_role(name) in ADMIN_ROLES for name in user.role_names)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not is_admin(current_user):
        raise PermissionDeniedError("Access denied. Insufficient permissions.")
    return current_user
