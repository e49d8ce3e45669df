import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from notesync.extensions import db, limiter

health_bp = Blueprint('health', __name__)
log = logging.getLogger(__name__)


@health_bp.route("/health")
@limiter.exempt
def health_check():
    """Report whether the application can reach its database."""
    database = check_database()
    healthy = database["healthy"]

    return jsonify({
        "status": "ok" if healthy else "error",
        "database": "connected" if healthy else "disconnected",
        "version": current_app.config.get("VERSION", "1.0.0"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200 if healthy else 503


def check_database():
    """Check database connectivity."""
    try:
        db.session.execute(text("SELECT 1"))
        return {
            "healthy": True,
            "message": "Database connection successful"
        }
    except SQLAlchemyError as e:
        log.error(f"Database health check failed: {str(e)}")
        return {
            "healthy": False,
            "message": str(e)
        }
