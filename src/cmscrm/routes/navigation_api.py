# src/cmscrm/routes/navigation_api.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.pages import get_pages_by_user
from src.cmscrm.models.user import User
from src.cmscrm.utils.auth import get_current_user
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.exceptions import UnclassifiedError
from src.cmscrm.utils.navigation import build_navigation
from src.cmscrm.utils.responses import api_response

router = APIRouter(prefix="/api/navigation", tags=["Navigation"])


@router.get("")
async def api_navigation(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Sidebar for the current user: role-filtered menu plus assigned pages."""
    try:
        pages = await get_pages_by_user(db, current_user.id)
    except Exception as exc:
        raise UnclassifiedError("Failed to build navigation", exc) from exc
    return api_response(
        "Navigation retrieved successfully",
        build_navigation(current_user.role_names, pages),
    )
