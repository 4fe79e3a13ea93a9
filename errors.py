"""
Error types shared by the repositories, the services and the HTTP layer.

Repositories raise ``StoreError`` (or ``DuplicateKeyConflict`` when a
unique index rejects a write).  Services translate those, and pydantic
validation failures, into a ``ServiceError`` subclass which carries the
HTTP status and the message rendered in the response envelope.
"""

from typing import Optional

from pydantic import ValidationError as SchemaValidationError


class StoreError(Exception):
    """The document store failed to execute an operation."""


class DuplicateKeyConflict(StoreError):
    """A write violated a unique constraint on ``field``."""

    def __init__(self, field: str, message: str = ""):
        self.field = field
        super().__init__(message or f"duplicate value for unique field '{field}'")


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error = error


class ValidationError(ServiceError):
    status_code = 400


class DuplicateKeyError(ServiceError):
    status_code = 400

    def __init__(self, field: str, message: str, error: Optional[str] = None):
        super().__init__(message, error)
        self.field = field


class NotFoundError(ServiceError):
    status_code = 404


class UnexpectedError(ServiceError):
    status_code = 500


def describe_validation_error(exc: SchemaValidationError) -> str:
    """Flatten a pydantic error into one line naming each failing rule."""
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"])
        parts.append(f"{field}: {err['msg']}" if field else err["msg"])
    return "; ".join(parts)
