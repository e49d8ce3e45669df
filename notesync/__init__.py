import os

from flask import Flask

from notesync.errors import register_error_handlers
from notesync.extensions import init_extensions
from notesync.logger import setup_logging


def create_app(test_config=None, content_fetcher=None, post_client=None):
    """Application factory function.

    ``content_fetcher`` and ``post_client`` override the GitHub and Bluesky
    clients built from configuration.
    """
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    if test_config is None:
        from notesync.config import get_config
        config_name = os.environ.get('FLASK_ENV', 'default')
        app.config.from_object(get_config(config_name))
    else:
        app.config.from_mapping(test_config)

    setup_logging(app)

    # Initialize extensions
    init_extensions(app)

    # Models must be imported before create_all sees their tables
    from notesync import models  # noqa: F401

    from notesync.services import build_services
    build_services(app, content_fetcher=content_fetcher, post_client=post_client)

    register_error_handlers(app)
    register_blueprints(app)

    from notesync.cli import register_commands
    register_commands(app)

    return app


def register_blueprints(app):
    """Register all blueprints with the application."""
    from notesync.web.api import api_bp
    from notesync.web.health import health_bp
    from notesync.web.webhooks import webhooks_bp

    app.register_blueprint(webhooks_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(health_bp)
