"""
Service Errors

Every service-layer failure carries a machine-readable ``error_code`` and the
HTTP status the routers should answer with.
"""

from fastapi import HTTPException


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


def to_http_exception(e: ServiceError) -> HTTPException:
    """Convert a service error to an HTTPException with a structured body."""
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


def internal_error() -> HTTPException:
    """Generic 500 for unexpected failures. Callers log the exception first."""
    return HTTPException(
        status_code=500,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
