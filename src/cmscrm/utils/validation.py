# src/cmscrm/utils/validation.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from src.cmscrm.utils.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# request locations FastAPI prefixes onto error locs
_LOC_PREFIXES = {"body", "query", "path", "form", "header", "cookie"}


def format_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    pydantic/FastAPI error dicts -> [{"field": "url", "message": "..."}]
    """
    out: List[Dict[str, str]] = []
    for err in errors:
        loc = [str(p) for p in (err.get("loc") or ()) if str(p) not in _LOC_PREFIXES]
        msg = str(err.get("msg") or "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append({"field": ".".join(loc) or "body", "message": msg})
    return out


def parse_payload(model_cls: Type[M], data: Dict[str, Any]) -> M:
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(format_errors(exc.errors()))


def _to_positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_pagination(page: Optional[str], limit: Optional[str]) -> Tuple[int, int]:
    """Invalid numbers fall back to page=1 / limit=10; limit is capped."""
    p = _to_positive_int(page, DEFAULT_PAGE)
    l = min(_to_positive_int(limit, DEFAULT_LIMIT), MAX_LIMIT)
    return p, l


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 1


def to_bool(v: Any, default: bool = False) -> bool:
    if v is None:
        return default
    return str(v).strip().lower() in ("true", "1", "yes", "y", "on")
