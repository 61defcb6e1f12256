# src/cmscrm/schemas/page.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PageStatus = Literal["active", "inactive"]


def _strip_required(v):
    if v is None:
        return v
    v = str(v).strip()
    if not v:
        raise ValueError("must not be empty")
    return v


def _lower(v):
    return v.strip().lower() if isinstance(v, str) else v


class PageCreate(BaseModel):
    name: str = Field(max_length=100)
    url: str = Field(max_length=500)
    is_external: bool = False
    status: PageStatus = "active"

    @field_validator("name", "url", mode="before")
    @classmethod
    def _required(cls, v):
        if v is None:
            raise ValueError("is required")
        return _strip_required(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _lower(v) or "active"


class PageUpdate(BaseModel):
    """Sparse patch: None means 'leave untouched'."""

    name: Optional[str] = Field(default=None, max_length=100)
    url: Optional[str] = Field(default=None, max_length=500)
    is_external: Optional[bool] = None
    status: Optional[PageStatus] = None

    @field_validator("name", "url", mode="before")
    @classmethod
    def _strip(cls, v):
        return _strip_required(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _lower(v)

    def changes(self) -> dict:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class PageOut(BaseModel):
    id: int
    name: str
    url: str
    icon: Optional[str] = None
    is_external: bool
    status: str
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PageSimple(BaseModel):
    id: int
    name: str
    url: str
    is_external: bool
    status: str

    model_config = ConfigDict(from_attributes=True)


class PageList(BaseModel):
    items: List[PageOut]
    total: int
    page: int
    limit: int
    total_pages: int


class PageStats(BaseModel):
    total: int = 0
    active: int = 0
    inactive: int = 0
    external: int = 0
    internal: int = 0
