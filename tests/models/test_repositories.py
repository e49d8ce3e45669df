from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from notesync.errors import PersistenceError
from notesync.models.book import SyncStatusCode
from notesync.models.note import NoteScope
from notesync.models.post_record import PostStatus


def test_book_is_created_waiting(services, book):
    status = services.book_repository.get_sync_status(book.id)

    assert status.code == SyncStatusCode.WAITING
    assert status.last_synced_at is None
    assert book.full_name == 'alice/notes'
    assert services.book_repository.find_by_owner_and_repo('alice', 'notes').id == book.id


def test_owner_and_repo_are_unique(services, user, book):
    with pytest.raises(PersistenceError) as excinfo:
        services.book_repository.create(user.id, 'alice', 'notes')

    assert not excinfo.value.fatal


def test_connectivity_errors_are_fatal(services, mocker):
    mocker.patch.object(
        services.note_repository.session, 'execute',
        side_effect=OperationalError('SELECT', {}, Exception('unable to open database file')),
    )

    with pytest.raises(PersistenceError) as excinfo:
        services.note_repository.list_paths('book')

    assert excinfo.value.fatal


def test_update_sync_status_keeps_last_synced_at_when_not_given(services, book):
    synced_at = datetime(2024, 5, 1, 8, 30)
    services.book_repository.update_sync_status(book.id, SyncStatusCode.SYNCED, synced_at)
    services.book_repository.update_sync_status(book.id, SyncStatusCode.ERROR)

    status = services.book_repository.get_sync_status(book.id)
    assert status.code == SyncStatusCode.ERROR
    assert status.last_synced_at == synced_at
    assert status.to_dict()['status'] == 'ERROR'


def test_upsert_inserts_then_replaces(services, book, user):
    note, created = services.note_repository.upsert(
        book.id, user.id, 'a.md', title='First', body='one', tags=['x']
    )
    same, created_again = services.note_repository.upsert(
        book.id, user.id, 'a.md', title='Second', body='two', scope=NoteScope.PRIVATE
    )

    assert created is True
    assert created_again is False
    assert same.id == note.id
    assert (same.title, same.body, same.scope, same.tag_names) == ('Second', 'two', 'private', [])
    assert services.note_repository.list_paths(book.id) == {'a.md'}


def test_tags_are_shared_within_a_book(services, book, user):
    first, _ = services.note_repository.upsert(book.id, user.id, 'a.md', title='A', body='', tags=['t'])
    second, _ = services.note_repository.upsert(book.id, user.id, 'b.md', title='B', body='', tags=['t'])

    assert first.tags[0].id == second.tags[0].id


def test_delete_by_path_is_delete_if_exists(services, book, user):
    services.note_repository.upsert(book.id, user.id, 'a.md', title='A', body='')

    assert services.note_repository.delete_by_path(book.id, 'a.md') is True
    assert services.note_repository.delete_by_path(book.id, 'a.md') is False
    assert services.note_repository.get_by_path(book.id, 'a.md') is None


def test_delete_unused_tags(services, book, user):
    services.note_repository.upsert(book.id, user.id, 'a.md', title='A', body='', tags=['keep', 'drop'])
    services.note_repository.upsert(book.id, user.id, 'a.md', title='A', body='', tags=['keep'])

    assert services.note_repository.delete_unused_tags(book.id) == 1
    assert [tag.name for tag in book.tags] == ['keep']


def test_post_records_are_listed_per_note(services, book, user):
    note, _ = services.note_repository.upsert(book.id, user.id, 'a.md', title='A', body='')
    services.post_repository.create(note.id, user.id, PostStatus.ERROR, 'bluesky', error_message='down')
    services.post_repository.create(note.id, user.id, PostStatus.POSTED, 'bluesky', post_uri='at://x', post_cid='c')

    records = services.post_repository.list_by_note(note.id)

    assert [record.posted for record in records] == [False, True]
    assert records[1].to_dict()['post_uri'] == 'at://x'


def test_deleting_book_removes_its_notes(services, book, user):
    book_id = book.id
    services.note_repository.upsert(book_id, user.id, 'a.md', title='A', body='')

    services.book_repository.delete(book)

    assert services.note_repository.list_paths(book_id) == set()
    assert services.book_repository.get_sync_status(book_id) is None


def test_integrity_errors_are_not_fatal(services, mocker):
    mocker.patch.object(
        services.user_repository.session, 'commit',
        side_effect=IntegrityError('INSERT', {}, Exception('UNIQUE constraint failed')),
    )

    with pytest.raises(PersistenceError) as excinfo:
        services.user_repository.create('carol')

    assert not excinfo.value.fatal


def test_books_are_listed_per_user(services, user, book):
    other = services.user_repository.create('erin')
    services.book_repository.create(other.id, 'erin', 'wiki')

    assert [b.full_name for b in services.book_repository.list_by_user(user.id)] == ['alice/notes']
