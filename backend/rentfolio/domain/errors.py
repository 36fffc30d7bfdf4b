from __future__ import annotations

from typing import Optional


class DomainError(ValueError):
    """Base for store / domain rule failures. Routers map subclasses to HTTP codes."""

    status_code = 400


class ValidationError(DomainError):
    status_code = 422

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None) -> None:
        super().__init__(message)
        self.errors = dict(errors or {})


class NotFoundError(DomainError):
    status_code = 404


class PermissionDenied(DomainError):
    status_code = 403
