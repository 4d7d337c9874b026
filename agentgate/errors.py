"""Gateway error taxonomy shared by the transport and the upstream client."""
from typing import Optional


class GatewayError(Exception):
    """Base exception carrying an HTTP status and a stable error code"""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal error"

    def __init__(self, message: str = "", status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ValidationError(GatewayError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"

    def __init__(self, message: str = "", field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AuthenticationError(GatewayError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Invalid or missing API key"


class AuthorizationError(GatewayError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFoundError(GatewayError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(GatewayError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflict with current state"


class RateLimitError(GatewayError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    default_message = "Rate limit exceeded"


class UpstreamError(GatewayError):
    """Upstream API failed with a status we do not map, or was unreachable"""
    status_code = 502
    code = "UPSTREAM_ERROR"
    default_message = "Upstream agent API request failed"


_STATUS_ERRORS = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitError,
}


def error_from_response(status_code: int, message: str = "", code: Optional[str] = None) -> GatewayError:
    """
    Map an upstream HTTP status to a gateway error.

    Args:
        status_code: Upstream response status
        message: Error message reported by the upstream, if any
        code: Upstream error code, if any

    Returns:
        GatewayError subclass instance for the status
    """
    error_cls = _STATUS_ERRORS.get(status_code)
    if error_cls is None:
        return UpstreamError(message, code=code)
    error = error_cls(message)
    if code:
        error.code = code
    return error
