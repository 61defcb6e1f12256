# src/cmscrm/utils/responses.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    """Success envelope: {success, message, data?}."""
    content: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status_code, content=content)


def error_response(
    status_code: int,
    message: str,
    error: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Failure envelope: {success: false, message, error?, ...extra}."""
    content: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    if extra:
        content.update(extra)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content),
        headers=dict(headers) if headers else None,
    )
