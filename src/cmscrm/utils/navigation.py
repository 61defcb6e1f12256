# src/cmscrm/utils/navigation.py
"""
Sidebar model for the admin shell.

Two parts:
  * the static menu, filtered by the user's roles (role tag -> display name
    -> membership in each entry's allow-list);
  * the user's assigned pages, minus a fixed exclusion list, each classified
    as external (opened in an overlay viewer) or internal (client-side route).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class RoleTag(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


ROLE_DISPLAY_NAMES: Mapping[RoleTag, str] = {
    RoleTag.SUPER_ADMIN: "Super Admin",
    RoleTag.ADMIN: "Admin",
    RoleTag.MANAGER: "Manager",
    RoleTag.USER: "User",
}


@dataclass(frozen=True)
class MenuItem:
    name: str
    path: str
    icon: str
    roles: Tuple[str, ...]   # display names allowed to see the entry


MENU_ITEMS: Tuple[MenuItem, ...] = (
    MenuItem("Dashboard", "/dashboard", "layout-dashboard", ("Super Admin", "Admin", "Manager", "User")),
    MenuItem("Users", "/users", "users", ("Super Admin", "Admin")),
    MenuItem("Roles", "/roles", "shield", ("Super Admin", "Admin")),
    MenuItem("Pages", "/pages", "file-text", ("Super Admin", "Admin")),
)

# assigned pages that never show up in the sidebar
EXCLUDED_PAGE_NAMES = frozenset({"Activity Logs", "Company Website", "Documentation", "Help Center"})

EXTERNAL_SCHEMES = ("http://", "https://")


def _validate_tables() -> None:
    missing = [tag.value for tag in RoleTag if tag not in ROLE_DISPLAY_NAMES]
    if missing:
        raise RuntimeError(f"Role display names missing for: {', '.join(missing)}")
    known = set(ROLE_DISPLAY_NAMES.values())
    for item in MENU_ITEMS:
        unknown = sorted(set(item.roles) - known)
        if unknown:
            raise RuntimeError(f"Menu entry {item.name!r} allows unknown roles: {unknown}")


_validate_tables()

_BY_DISPLAY: Dict[str, RoleTag] = {v.lower(): k for k, v in ROLE_DISPLAY_NAMES.items()}


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Safe getter for dict/ORM objects."""
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def parse_role(role: Any) -> Optional[RoleTag]:
    """
    Accepts a tag ("super_admin"), a display name ("Super Admin")
    or an object with a `.name`. Unknown names map to None.
    """
    name = role if isinstance(role, str) else _get(role, "name")
    s = (name or "").strip()
    if not s:
        return None
    try:
        return RoleTag(s.lower())
    except ValueError:
        return _BY_DISPLAY.get(s.lower())


def display_name(role: Any) -> Optional[str]:
    tag = parse_role(role)
    return ROLE_DISPLAY_NAMES[tag] if tag else None


def visible_menu(roles: Iterable[Any]) -> List[Dict[str, str]]:
    names = {n for n in (display_name(r) for r in roles or ()) if n}
    return [
        {"name": item.name, "path": item.path, "icon": item.icon}
        for item in MENU_ITEMS
        if names.intersection(item.roles)
    ]


# ---------------------------------------------------------
# Assigned pages
# ---------------------------------------------------------
def is_external_page(page: Any) -> bool:
    url = _get(page, "url")
    return bool(_get(page, "is_external")) or (
        isinstance(url, str) and url.startswith(EXTERNAL_SCHEMES)
    )


def format_url(url: Optional[str]) -> str:
    if not url:
        return "#"
    if url.startswith(EXTERNAL_SCHEMES):
        return url
    return url if url.startswith("/") else f"/{url}"


def page_links(pages: Iterable[Any]) -> List[Dict[str, Any]]:
    links: List[Dict[str, Any]] = []
    for p in pages or ():
        if _get(p, "name") in EXCLUDED_PAGE_NAMES:
            continue
        external = is_external_page(p)
        links.append(
            {
                "id": _get(p, "id"),
                "name": _get(p, "name"),
                "href": format_url(_get(p, "url")),
                "icon": _get(p, "icon"),
                "is_external": external,
                "target": "overlay" if external else "route",
            }
        )
    return links


def build_navigation(roles: Iterable[Any], pages: Iterable[Any]) -> Dict[str, Any]:
    return {"menu": visible_menu(roles), "pages": page_links(pages)}
