"""
Service error taxonomy.

Every error raised by the services and storage adapters derives from
``ServiceError`` and carries the HTTP status it maps to. ``error_body`` is
the one place the ``{"error": {...}}`` payload is shaped; ``main.py`` uses
it for service, HTTP and validation failures alike.
"""
from typing import Any, Dict


def error_body(status_code: int, error_type: str, message: Any, **extra: Any) -> Dict[str, Any]:
    body = {"message": message, "type": error_type, "status_code": status_code}
    body.update({k: v for k, v in extra.items() if v})
    return {"error": body}


class ServiceError(Exception):
    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return error_body(self.status_code, self.error_type, self.message, context=self.context)


class ValidationError(ServiceError):
    """Malformed or empty input."""
    status_code = 400
    error_type = "validation_error"


class NotFoundError(ServiceError):
    """Referenced user profile, question or exam does not exist."""
    status_code = 404
    error_type = "not_found"


class ConflictError(ServiceError):
    """Mutation of a resource owned by someone else."""
    status_code = 409
    error_type = "conflict"


class StorageError(ServiceError):
    """The backing store failed; never retried here."""
    status_code = 503
    error_type = "storage_error"
