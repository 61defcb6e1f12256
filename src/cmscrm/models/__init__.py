# register every model on Base.metadata
from src.cmscrm.models.security.role import Role, role_pages, user_roles
from src.cmscrm.models.user import User
from src.cmscrm.models.page import Page
from src.cmscrm.models.activity_log import ActivityLog

__all__ = ["Role", "User", "Page", "ActivityLog", "role_pages", "user_roles"]
