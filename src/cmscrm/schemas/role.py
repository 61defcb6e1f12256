# src/cmscrm/schemas/role.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.cmscrm.schemas.page import PageSimple


def _clean_permissions(v):
    if v is None:
        return v
    return sorted({str(p).strip() for p in v if str(p).strip()})


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None
    permissions: List[str] = []
    page_ids: List[int] = []

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        # role names are snake_case tags ("super_admin")
        return (v or "").strip().lower()

    @field_validator("permissions", mode="before")
    @classmethod
    def _perms(cls, v):
        return _clean_permissions(v) or []


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = None
    permissions: Optional[List[str]] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("permissions", mode="before")
    @classmethod
    def _perms(cls, v):
        return _clean_permissions(v)


class RolePagesUpdate(BaseModel):
    page_ids: List[int]


class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: List[str] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleDetail(RoleOut):
    pages: List[PageSimple] = []
