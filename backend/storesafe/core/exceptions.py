"""
Centralized Exception Handling Module
=====================================

Defines custom exception classes for the application.

Benefits:
- Consistent error responses (`{"message": ..., "details": {...}}`)
- Proper HTTP status codes
- Structured error messages

Usage:
    raise NotFoundError("Incident", str(incident_id))
    raise InvalidTransitionError("incident", "closed", "open")
"""

from typing import Any, Dict, Optional
from fastapi import status


class StoreSafeException(Exception):
    """
    Base exception class for the StoreSafe application.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ==========================
# Authentication Exceptions
# ==========================

class AuthenticationError(StoreSafeException):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Could not validate credentials",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid."""

    def __init__(self):
        super().__init__(message="Invalid email or password")


class TokenExpiredError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, token_type: str = "access"):
        super().__init__(
            message=f"{token_type.capitalize()} token has expired",
            details={"token_type": token_type}
        )


class TokenInvalidError(AuthenticationError):
    """Raised when a JWT token is invalid."""

    def __init__(self, reason: str = "Invalid token"):
        super().__init__(
            message="Invalid token",
            details={"reason": reason}
        )


class TokenVersionMismatchError(AuthenticationError):
    """Raised when token version doesn't match user's current version."""

    def __init__(self):
        super().__init__(
            message="Token has been invalidated. Please log in again."
        )


# ==========================
# Account Status Exceptions
# ==========================

class AccountError(StoreSafeException):
    """Base exception for account-related issues."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_403_FORBIDDEN,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            details=details,
        )


class AccountLockedError(AccountError):
    """Raised when account is locked due to failed attempts."""

    def __init__(self):
        super().__init__(
            message="Account is locked due to multiple failed login attempts. "
                    "Please contact your administrator or try again later.",
        )


class AccountDisabledError(AccountError):
    """Raised when account is disabled."""

    def __init__(self):
        super().__init__(
            message="Account has been disabled. Please contact your administrator."
        )


# ==========================
# Resource Exceptions
# ==========================

class NotFoundError(StoreSafeException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str = "Resource", identifier: Optional[str] = None):
        message = f"{resource} not found"
        details = {"resource": resource}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="User", identifier=identifier)


class IncidentNotFoundError(NotFoundError):
    """Raised when an incident is not found in either the open or closed table."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="Incident", identifier=identifier)


class StoreNotFoundError(NotFoundError):
    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="Store", identifier=identifier)


class ConflictError(StoreSafeException):
    """Raised when a write conflicts with existing state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class InvalidTransitionError(ConflictError):
    """Raised when a status change is not allowed by the lifecycle rules."""

    def __init__(self, entity: str, current_status: str, new_status: str):
        super().__init__(
            message=f"Cannot move {entity} from {current_status} to {new_status}",
            details={
                "entity": entity,
                "current_status": current_status,
                "requested_status": new_status,
            },
        )


# ==========================
# Validation Exceptions
# ==========================

class ValidationError(StoreSafeException):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class BadRequestError(StoreSafeException):
    """Raised when a request is well-formed but cannot be processed as given."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class EmailAlreadyExistsError(ConflictError):
    """Raised when inviting an email that already has a profile."""

    def __init__(self, existing_role: Optional[str] = None):
        details = {}
        if existing_role:
            details["existing_role"] = existing_role
        super().__init__(
            message="An account with this email already exists",
            details=details,
        )


# ==========================
# Rate Limiting Exceptions
# ==========================

class RateLimitError(StoreSafeException):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message="Too many requests. Please try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after_seconds": retry_after}
        )


# ==========================
# External Service Exceptions
# ==========================

class ExternalServiceError(StoreSafeException):
    """Raised when an upstream service (the LLM API) fails."""

    def __init__(self, service: str, reason: str):
        super().__init__(
            message=f"{service} request failed",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": service, "reason": reason},
        )


class LLMNotConfiguredError(StoreSafeException):
    """Raised when an AI route is called without an API key configured."""

    def __init__(self):
        super().__init__(
            message="AI features are not configured",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


class DocumentGenerationError(StoreSafeException):
    """Raised when DOCX/PDF rendering fails."""

    def __init__(self, document: str, original_error: Optional[Exception] = None):
        super().__init__(
            message=f"Failed to generate {document}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"reason": str(original_error)} if original_error else None,
        )
        self.original_error = original_error
