"""
Shared error handling for the Identity Bridge.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from .logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class IdentityBridgeError(Exception):
    """Base exception for Identity Bridge services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class UpstreamRejectedError(IdentityBridgeError):
    """The identity provider answered a mandatory call with a failure."""

    status_code = 502

    def __init__(self, operation: str, message: str = "Identity provider rejected the request", details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__("UPSTREAM_REJECTED", f"{operation}: {message}", details)


class UnverifiedIdentityError(IdentityBridgeError):
    """The provider profile is not verified."""

    status_code = 403

    def __init__(self, message: str = "Please verify your email.", details: Optional[Dict[str, Any]] = None):
        super().__init__("UNVERIFIED_IDENTITY", message, details)


class KeyUnavailableError(IdentityBridgeError):
    """No public signing key is cached."""

    status_code = 404

    def __init__(self, message: str = "No signing key has been published", details: Optional[Dict[str, Any]] = None):
        super().__init__("KEY_UNAVAILABLE", message, details)


class TokenSigningError(IdentityBridgeError):
    """Signing an identity token failed."""

    status_code = 500

    def __init__(self, message: str = "Failed to sign identity token", details: Optional[Dict[str, Any]] = None):
        super().__init__("TOKEN_SIGNING_FAILED", message, details)


class CacheUnavailableError(IdentityBridgeError):
    """The key cache backend could not be reached."""

    status_code = 503

    def __init__(self, message: str = "Key cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)
