"""Domain error codes and exceptions raised by the service layer.

Services never raise HTTP exceptions; main.py translates DomainError into
a JSON response using ``http_status``.
"""
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Error codes surfaced to API callers."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    NO_TIER_SELECTED = "NO_TIER_SELECTED"
    TIER_INVALID = "TIER_INVALID"
    TIER_PERMISSION_DENIED = "TIER_PERMISSION_DENIED"
    TIER_QUOTA_EXHAUSTED = "TIER_QUOTA_EXHAUSTED"
    EVENT_FULL = "EVENT_FULL"
    ACCESS_CODE_EXHAUSTED = "ACCESS_CODE_EXHAUSTED"
    USER_HAS_EVENTS = "USER_HAS_EVENTS"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    http_status = 400

    def __init__(self, code: ErrorCode, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.field = field

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, "field": self.field}


class ValidationFailedError(DomainError):
    """Raised when input is malformed, before any state change."""

    def __init__(self, message: str, field: Optional[str] = None, code: ErrorCode = ErrorCode.VALIDATION_FAILED) -> None:
        super().__init__(code=code, message=message, field=field)


class AuthenticationError(DomainError):
    """Raised when the acting user is unknown or deactivated."""

    http_status = 401

    def __init__(self, message: str = "Acting user is unknown or inactive") -> None:
        super().__init__(code=ErrorCode.NOT_AUTHENTICATED, message=message)


class PermissionDeniedError(DomainError):
    """Raised when the actor lacks a capability or ownership of the target."""

    http_status = 403

    def __init__(self, message: str = "Not allowed") -> None:
        super().__init__(code=ErrorCode.PERMISSION_DENIED, message=message)


class NotFoundError(DomainError):
    """Raised when an administrative lookup finds nothing."""

    http_status = 404

    def __init__(self, resource: str, resource_id: Optional[str] = None) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message=f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class QuotaError(DomainError):
    """Capacity or quota gate rejection (tier invalid, no permission, exhausted, event full)."""

    http_status = 403

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(code=code, message=message)
        if code == ErrorCode.TIER_INVALID:
            self.http_status = 400


class AccessCodeExhaustedError(DomainError):
    """Raised when no unique access code could be drawn within the retry bound."""

    http_status = 503

    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.ACCESS_CODE_EXHAUSTED,
            message=f"Could not generate a unique access code after {attempts} attempts",
        )
        self.attempts = attempts
