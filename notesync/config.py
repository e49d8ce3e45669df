import os

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """Base configuration for the application."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-please-change-in-production'
    DEBUG = False
    TESTING = False

    # Database settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///notesync.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Base URL used when linking to published notes
    PUBLIC_URL = os.environ.get('PUBLIC_URL', 'http://localhost:8000')

    # GitHub App settings
    GITHUB_API_URL = os.environ.get('GITHUB_API_URL', 'https://api.github.com')
    GITHUB_APP_ID = os.environ.get('GITHUB_APP_ID')
    GITHUB_PRIVATE_KEY = os.environ.get('GITHUB_PRIVATE_KEY')
    GITHUB_WEBHOOK_SECRET = os.environ.get('GITHUB_WEBHOOK_SECRET')

    # Posting settings
    BLUESKY_SERVICE_URL = os.environ.get('BLUESKY_SERVICE_URL', 'https://bsky.social')
    POST_PLATFORM = os.environ.get('POST_PLATFORM', 'bluesky')
    POST_WORKERS = int(os.environ.get('POST_WORKERS', 4))

    # Sync pipeline settings
    SYNC_FETCH_WORKERS = int(os.environ.get('SYNC_FETCH_WORKERS', 4))
    SYNC_FETCH_RETRIES = int(os.environ.get('SYNC_FETCH_RETRIES', 3))
    SYNC_RETRY_DELAY = float(os.environ.get('SYNC_RETRY_DELAY', 1.0))
    SYNC_RETRY_BACKOFF = float(os.environ.get('SYNC_RETRY_BACKOFF', 2))
    TASK_WORKERS = int(os.environ.get('TASK_WORKERS', 2))
    HTTP_TIMEOUT = int(os.environ.get('HTTP_TIMEOUT', 10))

    # API access
    API_TOKEN = os.environ.get('API_TOKEN')

    # Rate limiting
    RATELIMIT_ENABLED = os.environ.get('RATELIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_DEFAULT_LIMIT = os.environ.get('RATELIMIT_DEFAULT_LIMIT', '1000 per hour')
    RATELIMIT_SYNC_LIMIT = os.environ.get('RATELIMIT_SYNC_LIMIT', '10 per minute')
    RATELIMIT_STATUS_LIMIT = os.environ.get('RATELIMIT_STATUS_LIMIT', '120 per minute')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json')
    LOG_DIR = os.environ.get('LOG_DIR')

    VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    LOG_FORMAT = 'standard'

    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or 'sqlite:///dev.db'


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    DEBUG = True

    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    GITHUB_WEBHOOK_SECRET = 'test-webhook-secret'
    RATELIMIT_ENABLED = False
    SYNC_RETRY_DELAY = 0
    LOG_FORMAT = 'standard'


class ProductionConfig(Config):
    """Production configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')


# Configuration dictionary
config_dict = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration class based on environment."""
    if not config_name:
        config_name = os.environ.get('FLASK_ENV', 'default')
    return config_dict.get(config_name, config_dict['default'])
