from __future__ import annotations

from pydantic import BaseModel


class FieldError(BaseModel):
    field: str
    message: str


class FilingError(Exception):
    """base for every error the service turns into an HTTP response"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> list[dict]:
        return []


class ValidationError(FilingError):
    """malformed or out-of-range input; raised before anything is persisted"""

    status_code = 400

    def __init__(self, message: str, errors: list[FieldError] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def details(self) -> list[dict]:
        return [e.model_dump() for e in self.errors]


class AuthError(FilingError):
    status_code = 401


class NotFoundError(FilingError):
    status_code = 404


class ConflictError(FilingError):
    """operation not valid for the job's current status"""

    status_code = 400


class ExternalServiceError(FilingError):
    status_code = 502


class PersistenceError(FilingError):
    status_code = 500
