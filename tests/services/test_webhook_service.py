import json
from unittest.mock import MagicMock

import pytest

from notesync.errors import ValidationError, WebhookVerificationError
from notesync.models.book import SyncStatusCode
from notesync.services.reconciler import CommitChange
from notesync.services.sync_service import SyncAttempt
from notesync.services.webhook_service import WebhookService, sign

SECRET = 'shh'


@pytest.fixture
def mock_services():
    book = MagicMock(id='book-1')
    book_repository = MagicMock()
    book_repository.find_by_owner_and_repo.return_value = book

    sync_service = MagicMock()
    sync_service.sync_commits.return_value = SyncAttempt(book_id='book-1', mode='incremental')
    sync_service.sync_commits.return_value.status = SyncStatusCode.SYNCED

    post_fanout = MagicMock()
    post_fanout.publish.return_value = []

    return {
        'book': book,
        'book_repository': book_repository,
        'sync_service': sync_service,
        'post_fanout': post_fanout,
    }


@pytest.fixture
def webhook_service(mock_services):
    return WebhookService(
        SECRET,
        mock_services['book_repository'],
        mock_services['sync_service'],
        mock_services['post_fanout'],
    )


def push_payload(commits=None):
    return json.dumps({
        'repository': {'owner': {'login': 'alice'}, 'name': 'notes'},
        'installation': {'id': 42},
        'commits': commits or [],
    }).encode()


def signed_headers(body, event='push', secret=SECRET):
    return {'X-GitHub-Event': event, 'X-Hub-Signature-256': sign(secret, body)}


def test_valid_push_is_synced(webhook_service, mock_services):
    body = push_payload([{'added': ['a.md'], 'modified': [], 'removed': []}, {'removed': ['b.md']}])

    result = webhook_service.handle(body, signed_headers(body))

    mock_services['sync_service'].sync_commits.assert_called_once_with(
        'book-1',
        [CommitChange(added=('a.md',)), CommitChange(removed=('b.md',))],
        installation_id=42,
    )
    assert result.status == 'SYNCED'
    assert result.to_dict() == {'synced': 0, 'added': [], 'posted': [], 'status': 'SYNCED'}


def test_header_names_are_case_insensitive(webhook_service, mock_services):
    body = push_payload()
    headers = {key.lower(): value for key, value in signed_headers(body).items()}

    webhook_service.handle(body, headers)

    mock_services['sync_service'].sync_commits.assert_called_once()


@pytest.mark.parametrize('signature', [None, '', 'sha1=abc', 'sha256=' + '0' * 64])
def test_bad_signatures_are_rejected(webhook_service, mock_services, signature):
    body = push_payload()
    headers = {'X-GitHub-Event': 'push'}
    if signature is not None:
        headers['X-Hub-Signature-256'] = signature

    with pytest.raises(WebhookVerificationError):
        webhook_service.handle(body, headers)

    mock_services['sync_service'].sync_commits.assert_not_called()


def test_signature_over_different_body_is_rejected(webhook_service):
    body = push_payload()

    with pytest.raises(WebhookVerificationError):
        webhook_service.handle(body + b' ', signed_headers(body))


def test_missing_secret_rejects_everything(mock_services):
    service = WebhookService(None, mock_services['book_repository'], mock_services['sync_service'],
                             mock_services['post_fanout'])
    body = push_payload()

    with pytest.raises(WebhookVerificationError):
        service.handle(body, signed_headers(body))


def test_non_push_event_is_ignored(webhook_service, mock_services):
    body = b'{"zen": "Keep it logically awesome."}'

    result = webhook_service.handle(body, signed_headers(body, event='ping'))

    assert result.ignored
    assert result.synced == 0
    mock_services['sync_service'].sync_commits.assert_not_called()


def test_missing_event_header_is_invalid(webhook_service):
    body = push_payload()
    headers = signed_headers(body)
    del headers['X-GitHub-Event']

    with pytest.raises(ValidationError):
        webhook_service.handle(body, headers)


def test_untracked_repository_is_a_no_op(webhook_service, mock_services):
    mock_services['book_repository'].find_by_owner_and_repo.return_value = None
    body = push_payload([{'added': ['a.md']}])

    result = webhook_service.handle(body, signed_headers(body))

    assert result.ignored
    assert result.to_dict()['synced'] == 0
    mock_services['sync_service'].sync_commits.assert_not_called()


@pytest.mark.parametrize('body', [
    b'not json',
    b'[]',
    b'{"repository": {"name": "notes"}}',
    b'{"repository": {"owner": {"login": "alice"}, "name": "notes"}, "commits": {}}',
    b'{"repository": {"owner": {"login": "alice"}, "name": "notes"}, "commits": [{"added": "a.md"}]}',
])
def test_malformed_payloads_are_invalid(webhook_service, mock_services, body):
    with pytest.raises(ValidationError):
        webhook_service.handle(body, signed_headers(body))

    mock_services['sync_service'].sync_commits.assert_not_called()


def test_only_added_notes_are_posted(webhook_service, mock_services):
    added, updated = MagicMock(id='n1'), MagicMock(id='n2')
    attempt = mock_services['sync_service'].sync_commits.return_value
    attempt.added = [added]
    attempt.updated = [updated]
    mock_services['post_fanout'].publish.return_value = [MagicMock(note_id='n1', posted=True)]
    body = push_payload([{'added': ['a.md'], 'modified': ['b.md']}])

    result = webhook_service.handle(body, signed_headers(body))

    mock_services['post_fanout'].publish.assert_called_once_with([added])
    assert result.synced == 2
    assert result.added == ['n1']
    assert result.posted == ['n1']
