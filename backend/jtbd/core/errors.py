"""
Error taxonomy shared by the service and the client

Every error carries a human-readable ``message`` meant for the person using the
tool, a machine-readable ``code`` and an optional ``detail`` with raw
diagnostics. ``detail`` is for logs only and never goes over the wire.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Error kinds"""
    VALIDATION = "validation"
    CONFLICT = "conflict"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    INTERNAL = "internal"


class JtbdError(Exception):
    """Base error"""

    kind = ErrorKind.INTERNAL
    status_code = 500
    retryable = False
    default_message = "Something went wrong. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.kind.value
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (no raw diagnostics)"""
        return {
            "error": self.code,
            "kind": self.kind.value,
            "message": self.message,
        }

    def __repr__(self):
        return f"<{type(self).__name__}(code={self.code!r}, message={self.message!r})>"


class ValidationError(JtbdError):
    """Input fails a declared constraint (range, enum, required)"""
    kind = ErrorKind.VALIDATION
    status_code = 422
    default_message = "Some fields are invalid."


class ConflictError(ValidationError):
    """Uniqueness violation"""
    kind = ErrorKind.CONFLICT
    status_code = 409
    default_message = "This record already exists."


class AuthenticationError(JtbdError):
    """No valid session"""
    kind = ErrorKind.AUTHENTICATION
    status_code = 401
    default_message = "Please sign in again."


class AuthorizationError(JtbdError):
    """Request rejected by the access policy"""
    kind = ErrorKind.AUTHORIZATION
    status_code = 403
    default_message = "Permission denied - please check your account access."


class NotFoundError(JtbdError):
    """Referenced row does not exist (or is not visible)"""
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "The requested record was not found."


class TransientError(JtbdError):
    """Timeout or connectivity failure; safe to retry"""
    kind = ErrorKind.TRANSIENT
    status_code = 503
    retryable = True
    default_message = "The server did not respond in time. Please try again."


_BY_KIND = {
    cls.kind.value: cls
    for cls in (ValidationError, ConflictError, AuthenticationError,
                AuthorizationError, NotFoundError, TransientError, JtbdError)
}

_BY_STATUS = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    502: TransientError,
    503: TransientError,
    504: TransientError,
}


def error_from_response(status_code: int, body: Any) -> JtbdError:
    """
    Rebuild a typed error from an HTTP error response

    Args:
        status_code: HTTP status code
        body: Decoded JSON body (or anything else if the body was not JSON)

    Returns:
        The matching JtbdError subclass instance
    """
    payload = body if isinstance(body, dict) else {}
    cls = _BY_KIND.get(payload.get("kind")) or _BY_STATUS.get(status_code, JtbdError)
    return cls(
        payload.get("message"),
        code=payload.get("error"),
        detail=f"HTTP {status_code}: {body!r}"[:500],
    )
