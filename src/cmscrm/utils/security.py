# src/cmscrm/utils/security.py
from __future__ import annotations

import time
from typing import Optional, Dict, Any

from jose import jwt, JWTError
from passlib.context import CryptContext

from src.cmscrm.config import settings
from src.cmscrm.utils.exceptions import AuthenticationError

# ---- Password hashing policy ----
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)


# ---------------------------------------------------------------------
# Password Handling
# ---------------------------------------------------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # unknown/garbled hash in the DB
        return False


# ---------------------------------------------------------------------
# Token Handling - Access Token
# ---------------------------------------------------------------------
def create_access_token(data: Dict[str, Any], minutes: Optional[int] = None) -> str:
    """
    Create a JWT access token.
    Uses epoch seconds to avoid timezone/datetime issues.
    """
    now_ts = int(time.time())
    exp_ts = now_ts + int(60 * (minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {**data, "iat": now_ts, "exp": exp_ts}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def _check_exp_with_leeway(payload: Dict[str, Any]) -> None:
    exp = payload.get("exp")
    if exp is None:
        raise AuthenticationError("Invalid token")

    now = int(time.time())
    if now > int(exp) + settings.JWT_LEEWAY_SECONDS:
        raise AuthenticationError("Token expired")


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Return payload or raise AuthenticationError.
    python-jose doesn't accept a leeway kwarg, so exp is checked here.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False, "verify_exp": False},
        )
    except JWTError:
        raise AuthenticationError("Invalid token")
    _check_exp_with_leeway(payload)
    return payload
