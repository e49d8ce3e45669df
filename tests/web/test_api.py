import pytest

from notesync import create_app
from notesync.errors import ContentAuthError
from notesync.extensions import db as _db
from notesync.models.book import SyncStatusCode
from notesync.services import get_services


def wait_for_background_work(services):
    services.executor.shutdown(wait=True)


def test_sync_request_is_accepted_and_runs_in_background(client, services, book, user, fetcher):
    fetcher.files['a.md'] = "# A\nbody"

    response = client.post('/api/books/sync', json={'user_id': user.id, 'owner': 'alice', 'repo': 'notes'})

    assert response.status_code == 202
    assert response.json == {'accepted': True}

    wait_for_background_work(services)
    status = client.get(f'/api/books/{book.id}/status')
    assert status.json['status'] == 'SYNCED'
    assert status.json['lastSyncedAt'] is not None
    assert services.note_repository.get_by_path(book.id, 'a.md') is not None


def test_failed_background_sync_is_only_visible_through_status(client, services, book, user, fetcher):
    fetcher.listing_error = ContentAuthError("revoked", status_code=401)

    response = client.post('/api/books/sync', json={'user_id': user.id, 'owner': 'alice', 'repo': 'notes'})

    assert response.status_code == 202
    wait_for_background_work(services)
    assert client.get(f'/api/books/{book.id}/status').json == {'status': 'ERROR', 'lastSyncedAt': None}


def test_sync_request_for_someone_elses_book_is_refused(client, services, book):
    other = services.user_repository.create('mallory')

    response = client.post('/api/books/sync', json={'user_id': other.id, 'owner': 'alice', 'repo': 'notes'})

    assert response.status_code == 200
    assert response.json == {'accepted': False}


def test_sync_request_for_unknown_book_is_refused(client, user):
    response = client.post('/api/books/sync', json={'user_id': user.id, 'owner': 'alice', 'repo': 'missing'})

    assert response.json == {'accepted': False}


def test_sync_request_requires_fields(client, user):
    response = client.post('/api/books/sync', json={'user_id': user.id})

    assert response.status_code == 400
    assert 'owner' in response.json['error']['message']


def test_api_token_is_enforced_when_configured(app, client, user, book):
    app.config['API_TOKEN'] = 'sekrit'
    body = {'user_id': user.id, 'owner': 'alice', 'repo': 'notes'}

    assert client.post('/api/books/sync', json=body).status_code == 401
    assert client.post('/api/books/sync', json=body, headers={'Authorization': 'Bearer nope'}).status_code == 403
    assert client.get(f'/api/books/{book.id}/status').status_code == 401

    response = client.get(f'/api/books/{book.id}/status', headers={'Authorization': 'Bearer sekrit'})
    assert response.status_code == 200


def test_status_of_new_book_is_waiting(client, book):
    response = client.get(f'/api/books/{book.id}/status')

    assert response.status_code == 200
    assert response.json == {'status': SyncStatusCode.WAITING.name, 'lastSyncedAt': None}


def test_status_of_unknown_book_is_not_found(client, db):
    response = client.get('/api/books/does-not-exist/status')

    assert response.status_code == 404
    assert 'error' in response.json


@pytest.fixture
def limited_app(tmp_path, fetcher, post_client):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'limits.db'}",
        'RATELIMIT_ENABLED': True,
        'RATELIMIT_STORAGE_URI': 'memory://',
        'RATELIMIT_STATUS_LIMIT': '3 per minute',
        'LOG_FORMAT': 'standard',
    }, content_fetcher=fetcher, post_client=post_client)

    with app.app_context():
        _db.create_all()
        services = get_services(app)
        user = services.user_repository.create('alice')
        app.config['BOOK_ID'] = services.book_repository.create(user.id, 'alice', 'notes').id

    yield app

    get_services(app).executor.shutdown(wait=True)
    with app.app_context():
        _db.engine.dispose()


def test_status_polling_has_its_own_limit(limited_app):
    client = limited_app.test_client()
    url = f"/api/books/{limited_app.config['BOOK_ID']}/status"

    assert [client.get(url).status_code for _ in range(3)] == [200, 200, 200]
    assert client.get(url).status_code == 429


def test_health_is_not_rate_limited(limited_app):
    client = limited_app.test_client()

    assert all(client.get('/health').status_code == 200 for _ in range(5))
