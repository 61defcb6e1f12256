# src/cmscrm/schemas/user.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, SecretStr, field_validator

UserStatus = Literal["active", "inactive"]


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: SecretStr = Field(min_length=6, max_length=255)  # hashed upstream
    role_ids: List[int] = []
    status: UserStatus = "active"

    @field_validator("username", mode="before")
    @classmethod
    def _trim(cls, v):
        return (v or "").strip()

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return (v or "").strip().lower()


class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[SecretStr] = Field(default=None, min_length=6, max_length=255)
    role_ids: Optional[List[int]] = None
    status: Optional[UserStatus] = None

    @field_validator("username", mode="before")
    @classmethod
    def _trim(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    status: str
    roles: List[str] = []
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("roles", mode="before")
    @classmethod
    def _role_names(cls, v):
        # ORM gives Role objects; API exposes their names
        return [getattr(r, "name", r) for r in (v or [])]

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return (v or "").strip().lower()
