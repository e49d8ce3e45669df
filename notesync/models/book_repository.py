"""Repository for books and their sync status."""

import logging

from notesync.models.base_repository import BaseRepository
from notesync.models.book import Book, SyncStatus, SyncStatusCode

log = logging.getLogger(__name__)


class SqlAlchemyBookRepository(BaseRepository):
    """SQLAlchemy implementation of the book repository."""

    def __init__(self, db_instance=None):
        super().__init__(db_instance, Book)

    def create(self, user_id, owner, repo, installation_id=None, name=None, description=None):
        """Create a book together with its WAITING sync status."""
        with self.transaction(f"creating book {owner}/{repo}") as session:
            book = Book(
                user_id=user_id,
                owner=owner,
                repo=repo,
                installation_id=installation_id,
                name=name or repo,
                description=description or f"{owner}/{repo}",
            )
            book.sync_status = SyncStatus(status=SyncStatusCode.WAITING.value)
            session.add(book)

        log.info(f"Created book {book.id} for {owner}/{repo}")
        return book

    def find_by_owner_and_repo(self, owner, repo):
        with self.translate_errors(f"looking up book {owner}/{repo}"):
            return Book.query.filter_by(owner=owner, repo=repo).first()

    def list_by_user(self, user_id):
        with self.translate_errors(f"listing books for user {user_id}"):
            return Book.query.filter_by(user_id=user_id).order_by(Book.created_at).all()

    def get_sync_status(self, book_id):
        with self.translate_errors(f"loading sync status for {book_id}"):
            return self.session.get(SyncStatus, book_id)

    def update_sync_status(self, book_id, status, last_synced_at=None):
        """Set the status; ``last_synced_at`` is only written when given."""
        with self.transaction(f"updating sync status for {book_id}") as session:
            sync_status = session.get(SyncStatus, book_id)
            if sync_status is None:
                sync_status = SyncStatus(book_id=book_id)
                session.add(sync_status)
            sync_status.status = status.value
            if last_synced_at is not None:
                sync_status.last_synced_at = last_synced_at
        return sync_status

    def update_installation(self, book, installation_id):
        with self.transaction(f"updating installation for {book.full_name}"):
            book.installation_id = installation_id
        return book

    def delete(self, book):
        with self.transaction(f"deleting book {book.id}") as session:
            session.delete(book)
        return True
