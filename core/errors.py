"""
core/errors.py -- Service-layer error taxonomy.

Services raise these; api/main.py maps them to HTTP responses in a single
exception handler. Keeping the status code on the class means route handlers
never translate errors themselves.

Body shapes:
  ServiceError     -> {"msg": message}
  ValidationError  -> {"errors": [{"msg", "param", "location"}, ...]}
"""

from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for every error a service operation may raise."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"msg": self.message}


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "No token, authorization denied"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 400
    default_message = "Already exists"


class InvalidCredentials(ServiceError):
    status_code = 400
    default_message = "Invalid credentials"


class InvalidOrExpiredToken(ServiceError):
    status_code = 400
    default_message = "Token is invalid or has expired"


class InternalError(ServiceError):
    status_code = 500
    default_message = "Server error"


class ValidationError(ServiceError):
    """Field-level validation failure carrying one entry per offending field."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[dict]) -> None:
        self.errors = errors
        super().__init__("; ".join(e["msg"] for e in errors) or None)

    @classmethod
    def single(cls, param: str, msg: str, location: str = "body") -> "ValidationError":
        return cls([field_error(param, msg, location)])

    def to_body(self) -> dict:
        return {"errors": self.errors}


def field_error(param: str, msg: str, location: str = "body") -> dict:
    """Build one entry of a ValidationError list."""
    return {"msg": msg, "param": param, "location": location}
