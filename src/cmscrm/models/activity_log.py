#src/cmscrm/models/activity_log.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, JSON, Integer
from sqlalchemy.orm import Mapped, mapped_column

from src.cmscrm.utils.database import Base
from src.cmscrm.utils.timezone import now_local


class ActivityLog(Base):
    """Append-only audit trail; rows are never updated or deleted by the app."""

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True, autoincrement=True)

    # no FK: the trail must survive deletion of the actor
    user_id:       Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    username:      Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    action:        Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    resource_id:   Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    details:       Mapped[dict] = mapped_column(JSON, default=dict)

    ip_address:    Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent:    Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at:    Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_local)
