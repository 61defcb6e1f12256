# src/cmscrm/schemas/activity_log_schema.py
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class ActivityLogRead(BaseModel):
    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = {
        "from_attributes": True
    }
