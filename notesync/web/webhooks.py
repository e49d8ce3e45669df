import logging

from flask import Blueprint, jsonify, request

from notesync.extensions import limiter
from notesync.services import get_services

webhooks_bp = Blueprint("webhooks", __name__)
log = logging.getLogger(__name__)


@webhooks_bp.route("/webhook", methods=["POST"])
@limiter.exempt
def github_webhook():
    """Handle incoming GitHub push deliveries."""
    delivery = request.headers.get('X-GitHub-Delivery')
    log.info(f"Received GitHub webhook {delivery or ''}".strip())

    # Verification needs the exact bytes GitHub signed
    result = get_services().webhook_service.handle(request.get_data(), request.headers)
    return jsonify(result.to_dict()), 200
