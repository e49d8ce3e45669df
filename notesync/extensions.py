"""
Flask extensions shared by the application.

Instances live here so blueprints can import them; the application factory
binds them to the app.
"""

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def default_rate_limit():
    return current_app.config.get('RATELIMIT_DEFAULT_LIMIT', '1000 per hour')


def sync_rate_limit():
    return current_app.config.get('RATELIMIT_SYNC_LIMIT', '10 per minute')


def status_rate_limit():
    return current_app.config.get('RATELIMIT_STATUS_LIMIT', '120 per minute')


# Webhooks and health checks are exempt; routes without their own limit get the default
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[default_rate_limit],
)


def init_extensions(app):
    """Bind the shared extensions to the app."""
    db.init_app(app)
    limiter.init_app(app)
