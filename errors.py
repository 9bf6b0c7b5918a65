"""
Service error hierarchy.
Raised by the core modules, converted to HTTP responses by api.deps.
"""
from typing import Any, Optional


class ServiceError(Exception):
    """Base service error."""

    def __init__(self, message: str, code: str = "SERVICE_ERROR", details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)


class ValidationError(ServiceError):
    """Validation error."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(ServiceError):
    """Resource not found."""

    def __init__(self, message: str):
        super().__init__(message, "NOT_FOUND")


class ForbiddenError(ServiceError):
    """Permission denied."""

    def __init__(self, message: str):
        super().__init__(message, "FORBIDDEN")


class InternalError(ServiceError):
    """Storage or unexpected failure. Details are only set outside production."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, "INTERNAL_ERROR", details)
