# attendify/core/errors.py
from __future__ import annotations
from typing import Any, Optional


class AppError(Exception):
    """Erro de domínio; o handler em main.py converte para {"code","message","details"}."""

    code = "APP_ERROR"
    status_code = 400

    def __init__(self, message: str, *, details: Optional[Any] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404


class AuthenticationError(AppError):
    code = "UNAUTHORIZED"
    status_code = 401


class AccessDeniedError(AppError):
    code = "ACCESS_DENIED"
    status_code = 403


class CourseNotSetError(AccessDeniedError):
    code = "COURSE_NOT_SET"

    def __init__(self, message: str = "student course is not set. contact admin", **kw):
        super().__init__(message, **kw)


class NotAuthorizedToScanError(AccessDeniedError):
    code = "NOT_AUTHORIZED_TO_SCAN"

    def __init__(self, message: str = "Not Authorized to scan QR Code", **kw):
        super().__init__(message, **kw)


class ConflictError(AppError):
    code = "CONFLICT"
    status_code = 409


class StateError(AppError):
    code = "INVALID_STATE"
    status_code = 400


