import hmac
import logging
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from notesync.errors import AuthenticationError, ForbiddenError, ValidationError
from notesync.extensions import limiter, status_rate_limit, sync_rate_limit
from notesync.services import get_services

api_bp = Blueprint("api", __name__, url_prefix="/api")
log = logging.getLogger(__name__)


def api_token_required(f):
    """Decorator to check the bearer token when API_TOKEN is configured."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('API_TOKEN')
        if not expected:
            return f(*args, **kwargs)

        header = request.headers.get('Authorization', '')
        if not header.startswith('Bearer '):
            raise AuthenticationError("API token is required")

        if not hmac.compare_digest(header[len('Bearer '):].encode('utf-8'), expected.encode('utf-8')):
            raise ForbiddenError("Invalid API token")

        return f(*args, **kwargs)
    return decorated_function


@api_bp.route("/books/sync", methods=["POST"])
@limiter.limit(sync_rate_limit)
@api_token_required
def request_sync():
    """Queue a full resync of a book. Acceptance says nothing about the outcome."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = [key for key in ('user_id', 'owner', 'repo') if not data.get(key)]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")

    accepted = get_services().sync_service.request_resync(data['user_id'], data['owner'], data['repo'])
    return jsonify({"accepted": accepted}), 202 if accepted else 200


@api_bp.route("/books/<book_id>/status", methods=["GET"])
@limiter.limit(status_rate_limit)
@api_token_required
def book_status(book_id):
    """Return the sync status of a book."""
    return jsonify(get_services().sync_service.get_sync_status(book_id))
