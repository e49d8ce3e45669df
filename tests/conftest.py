import os
import tempfile

import pytest

from notesync import create_app
from notesync.extensions import db as _db
from notesync.services import get_services
from fakes import FakeContentFetcher, FakePostClient

WEBHOOK_SECRET = 'test-webhook-secret'


@pytest.fixture
def fetcher():
    return FakeContentFetcher()


@pytest.fixture
def post_client():
    return FakePostClient()


@pytest.fixture
def app(fetcher, post_client):
    """Create and configure a Flask app for testing."""
    # Create a temp file to isolate the database for each test
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-key',
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PUBLIC_URL': 'https://md.example',
        'GITHUB_WEBHOOK_SECRET': WEBHOOK_SECRET,
        'POST_PLATFORM': 'bluesky',
        'POST_WORKERS': 2,
        'SYNC_FETCH_WORKERS': 4,
        'SYNC_FETCH_RETRIES': 3,
        'SYNC_RETRY_DELAY': 0,
        'SYNC_RETRY_BACKOFF': 2,
        'TASK_WORKERS': 1,
        'RATELIMIT_ENABLED': False,
        'RATELIMIT_STORAGE_URI': 'memory://',
        'LOG_LEVEL': 'INFO',
        'LOG_FORMAT': 'standard',
    }, content_fetcher=fetcher, post_client=post_client)

    with app.app_context():
        _db.create_all()

    yield app

    get_services(app).executor.shutdown(wait=True)
    with app.app_context():
        _db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def db(app):
    with app.app_context():
        yield _db
        _db.session.remove()


@pytest.fixture
def services(app, db):
    return get_services(app)


@pytest.fixture
def client(app, db):
    """A test client sharing the fixture's application context."""
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def user(services):
    return services.user_repository.create('alice', did='did:plc:alice', bluesky_access_token='alice-token')


@pytest.fixture
def book(services, user):
    return services.book_repository.create(user.id, 'alice', 'notes', installation_id=42)
