# src/cmscrm/routes/auth_api.py
# no `from __future__ import annotations` here: the slowapi wrapper on /login
# makes FastAPI resolve annotations against the wrapper's globals
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cmscrm.crud.users import get_user, touch_last_login
from src.cmscrm.models.user import User
from src.cmscrm.schemas.user import LoginRequest, UserOut
from src.cmscrm.utils.auth import authenticate_user, get_current_user
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.exceptions import AuthenticationError
from src.cmscrm.utils.logger import Action, Resource, log_user_action
from src.cmscrm.utils.rate_limit import auth_rate_limit
from src.cmscrm.utils.responses import api_response
from src.cmscrm.utils.security import create_access_token
from src.cmscrm.utils.validation import parse_payload

router = APIRouter(prefix="/api/auth", tags=["Auth"])

INVALID_CREDENTIALS = "Invalid email or password"


@router.post("/login")
@auth_rate_limit()
async def login(
    request: Request,
    body: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
):
    creds = parse_payload(LoginRequest, body)
    user = await authenticate_user(db, str(creds.email), creds.password)
    if not user:
        raise AuthenticationError(INVALID_CREDENTIALS)

    await touch_last_login(db, user)
    user = await get_user(db, user.id, fresh=True)
    token = create_access_token({"sub": str(user.id), "roles": user.role_names})
    data = {
        "token": token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user).model_dump(),
    }

    await log_user_action(
        db, user, Action.LOGIN, Resource.AUTH, user.id,
        details={"email": user.email}, request=request,
    )
    return api_response("Login successful", data)


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return api_response("User retrieved successfully", UserOut.model_validate(current_user).model_dump())


@router.post("/logout")
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # tokens are stateless; the client drops its copy
    await log_user_action(
        db, current_user, Action.LOGOUT, Resource.AUTH, current_user.id, request=request,
    )
    return api_response("Logout successful")
