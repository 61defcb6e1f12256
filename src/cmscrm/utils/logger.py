# src/cmscrm/utils/logger.py
"""
Audit trail writer.

Entries are appended *after* the mutation they describe has committed.
A failure here is logged and reported as False; it never propagates, so the
caller's already-committed change is still reported as a success.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.activity_log import create_activity_log
from src.cmscrm.models.user import User

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


class Resource(str, enum.Enum):
    PAGE = "PAGE"
    USER = "USER"
    ROLE = "ROLE"
    AUTH = "AUTH"


def _get_client_ip(request: Optional[Request]) -> str:
    """Best-effort client IP with proxy header support."""
    if request is None:
        return "0.0.0.0"
    xff = request.headers.get("X-Forwarded-For")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("X-Real-IP")
    if xri:
        return xri.strip()
    return request.client.host if (request.client and request.client.host) else "0.0.0.0"


async def log_user_action(
    db: AsyncSession,
    user: User,
    action: Action,
    resource_type: Resource,
    resource_id: Optional[int],
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> bool:
    # read before anything can expire the instance
    actor_id, actor_name = user.id, user.username
    ua = (request.headers.get("User-Agent") if request is not None else None) or "Unknown"
    try:
        await create_activity_log(
            db,
            user_id=actor_id,
            username=actor_name,
            action=action.value,
            resource_type=resource_type.value,
            resource_id=resource_id,
            details=jsonable_encoder(details or {}),
            ip_address=_get_client_ip(request),
            user_agent=ua[:512],
        )
        return True
    except Exception:
        logger.exception(
            "Activity log write failed | user=%s action=%s resource=%s id=%s",
            actor_id, action.value, resource_type.value, resource_id,
        )
        await db.rollback()
        return False
