# src/cmscrm/routes/activity_logs_api.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.activity_log import list_activity_logs
from src.cmscrm.models.user import User
from src.cmscrm.schemas.activity_log_schema import ActivityLogRead
from src.cmscrm.utils.auth import require_admin
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.exceptions import UnclassifiedError
from src.cmscrm.utils.responses import api_response
from src.cmscrm.utils.validation import parse_pagination, total_pages

# read-only: the audit trail has no write endpoints
router = APIRouter(prefix="/api/activity-logs", tags=["Activity Logs"])


@router.get("")
async def api_list_activity_logs(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    page_no, size = parse_pagination(page, limit)
    try:
        rows, total = await list_activity_logs(
            db,
            action=action,
            resource_type=resource_type,
            user_id=user_id,
            limit=size,
            offset=(page_no - 1) * size,
        )
    except Exception as exc:
        raise UnclassifiedError("Failed to retrieve activity logs", exc) from exc

    return api_response("Activity logs retrieved successfully", {
        "items": [ActivityLogRead.model_validate(r).model_dump() for r in rows],
        "total": total,
        "page": page_no,
        "limit": size,
        "total_pages": total_pages(total, size),
    })
