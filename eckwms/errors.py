import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception class for application-specific errors."""

    kind = "AppError"

    def __init__(self, message=None, details=None, status_code=None):
        super().__init__(message)
        self.message = message or "An unexpected error occurred"
        self.details = details
        self.status_code = status_code or 500

    def to_dict(self):
        """Structured error body returned to callers."""
        return {"success": False, "kind": self.kind, "message": self.message}


class ValidationError(AppError):
    """Exception for structurally invalid requests."""

    kind = "ValidationError"

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Validation error",
            details=details,
            status_code=400
        )


class AuthenticationError(AppError):
    """Exception for missing or unresolvable instance credentials.

    ``reason`` is ``missing`` when no credential was sent (401) and
    ``invalid`` when it did not resolve to a known instance (403).
    """

    kind = "AuthenticationError"

    MISSING = "missing"
    INVALID = "invalid"

    def __init__(self, message=None, details=None, reason=INVALID):
        super().__init__(
            message=message or "Authentication error",
            details=details,
            status_code=401 if reason == self.MISSING else 403
        )
        self.reason = reason

    @classmethod
    def missing(cls, header_name):
        return cls(f"Missing {header_name} header", reason=cls.MISSING)

    @classmethod
    def invalid(cls):
        return cls("Invalid API key", reason=cls.INVALID)


class TransientError(AppError):
    """Exception for store unavailability; safe to retry with backoff."""

    kind = "TransientError"

    def __init__(self, message=None, details=None, retry_after=5):
        super().__init__(
            message=message or "Service temporarily unavailable",
            details=details,
            status_code=503
        )
        self.retry_after = retry_after


class ConflictError(AppError):
    """Reserved for stricter ownership checks; not raised by confirm."""

    kind = "ConflictError"

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Conflict",
            details=details,
            status_code=409
        )


class ResourceNotFoundError(AppError):
    """Exception for requests to non-existent resources."""

    kind = "ResourceNotFoundError"

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Resource not found",
            details=details,
            status_code=404
        )


class ConfigurationError(AppError):
    """Exception for server-side misconfiguration."""

    kind = "ConfigurationError"

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Server misconfiguration",
            details=details,
            status_code=500
        )


ERROR_KINDS = {
    cls.kind: cls
    for cls in (ValidationError, AuthenticationError, TransientError,
                ConflictError, ResourceNotFoundError, ConfigurationError)
}


def register_error_handlers(app):
    """Register application error handlers."""

    @app.errorhandler(AppError)
    def handle_app_error(e):
        """Handle application specific errors."""
        response = jsonify(e.to_dict())
        response.status_code = e.status_code
        if isinstance(e, TransientError):
            response.headers['Retry-After'] = str(e.retry_after)
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle Werkzeug HTTP exceptions."""
        response = jsonify({
            "success": False,
            "kind": e.name.replace(" ", ""),
            "message": e.description
        })
        response.status_code = e.code
        return response

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        """Handle anything that escaped the service layer."""
        log.exception(f"Unhandled error: {str(e)}")
        return jsonify({
            "success": False,
            "kind": "InternalError",
            "message": "An unexpected error occurred"
        }), 500
