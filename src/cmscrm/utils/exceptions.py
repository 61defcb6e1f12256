# src/cmscrm/utils/exceptions.py
from __future__ import annotations

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base for errors that map onto the JSON envelope."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400

    def __init__(self, errors: List[Dict[str, Any]], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message=message)


class AuthenticationError(AppError):
    status_code = 401


class PermissionDeniedError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    # surfaced as 400 like the other client errors of the admin UI
    status_code = 400


class ReferentialIntegrityError(AppError):
    status_code = 400


class UnclassifiedError(AppError):
    """
    Wraps an unexpected failure with a user-facing message
    ("Failed to create page"); the cause is only exposed in development.
    """

    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
