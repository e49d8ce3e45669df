import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception class for application-specific errors."""

    def __init__(self, message=None, details=None, status_code=None):
        super().__init__(message)
        self.message = message or "An unexpected error occurred"
        self.details = details
        self.status_code = status_code or 500


class ValidationError(AppError):
    """Exception for data validation errors."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Validation error",
            details=details,
            status_code=400
        )


class AuthenticationError(AppError):
    """Exception for requests without valid credentials."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Authentication required",
            details=details,
            status_code=401
        )


class WebhookVerificationError(AuthenticationError):
    """Raised when a webhook delivery fails signature verification."""

    def __init__(self, message=None, details=None):
        super().__init__(message=message or "Webhook verification failed", details=details)


class ForbiddenError(AppError):
    """Exception for unauthorized access to resources."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Access forbidden",
            details=details,
            status_code=403
        )


class ResourceNotFoundError(AppError):
    """Exception for requests to non-existent resources."""

    def __init__(self, message=None, details=None):
        super().__init__(
            message=message or "Resource not found",
            details=details,
            status_code=404
        )


class RepositoryNotTracked(Exception):
    """No book exists for the delivered owner/repo."""

    def __init__(self, owner, repo):
        super().__init__(f"Repository {owner}/{repo} is not tracked")
        self.owner = owner
        self.repo = repo


class ContentFetchError(Exception):
    """Base class for failures while fetching file content from GitHub."""

    recoverable = True

    def __init__(self, message, path=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.status_code = status_code


class ContentNotFound(ContentFetchError):
    """The file no longer exists at the requested ref."""


class ContentRateLimited(ContentFetchError):
    """GitHub rejected the request because of rate limiting."""


class ContentNetworkError(ContentFetchError):
    """Connection failure, timeout or upstream 5xx."""


class ContentAuthError(ContentFetchError):
    """Installation credentials are invalid or revoked."""

    recoverable = False


class PersistenceError(Exception):
    """Raised by repositories when the store rejects an operation.

    ``fatal`` is True when the store itself is unreachable; such failures end
    the current sync attempt.
    """

    def __init__(self, message, fatal=False):
        super().__init__(message)
        self.message = message
        self.fatal = fatal


class PostingError(Exception):
    """Raised by the posting client. Always recorded, never escalated."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_response(message, status_code):
    return jsonify({"error": {"message": message}}), status_code


def register_error_handlers(app):
    """Register application error handlers."""

    @app.errorhandler(AppError)
    def handle_app_error(e):
        """Handle application specific errors."""
        return error_response(e.message, e.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle Werkzeug HTTP exceptions."""
        return error_response(e.description, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        """Handle anything that escaped the views."""
        log.exception(f"Unhandled error: {e}")
        return error_response("Internal server error", 500)
