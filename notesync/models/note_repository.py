"""
Repository for note database operations.

Notes are keyed by ``(book_id, path)``; every write goes through that key so
that replaying the same change set leaves the store unchanged.
"""

import logging

from sqlalchemy import select

from notesync.models.base_repository import BaseRepository
from notesync.models.note import Note, NoteScope, Tag, note_tags

log = logging.getLogger(__name__)


class SqlAlchemyNoteRepository(BaseRepository):
    """SQLAlchemy implementation of the note store."""

    def __init__(self, db_instance=None):
        super().__init__(db_instance, Note)

    def get_by_path(self, book_id, path):
        with self.translate_errors(f"loading note {book_id}:{path}"):
            return Note.query.filter_by(book_id=book_id, path=path).first()

    def list_by_book(self, book_id):
        with self.translate_errors(f"listing notes for {book_id}"):
            return Note.query.filter_by(book_id=book_id).order_by(Note.path).all()

    def list_paths(self, book_id):
        """Return the set of stored paths for a book, read fresh from the store."""
        with self.translate_errors(f"listing note paths for {book_id}"):
            rows = self.session.execute(select(Note.path).where(Note.book_id == book_id))
            return {row[0] for row in rows}

    def upsert(self, book_id, user_id, path, title, body, scope=NoteScope.PUBLIC, tags=None):
        """Insert the note or fully replace its title, body, scope and tags.

        Returns:
            tuple: (note, created)
        """
        with self.transaction(f"upserting note {book_id}:{path}") as session:
            note = Note.query.filter_by(book_id=book_id, path=path).first()
            created = note is None
            if created:
                note = Note(book_id=book_id, user_id=user_id, path=path)
                session.add(note)

            note.title = title
            note.body = body
            note.scope = scope.value
            note.tags = self._resolve_tags(book_id, tags or [])

        return note, created

    def delete_by_path(self, book_id, path):
        """Delete the note if it exists.

        Returns:
            bool: True when a note was removed
        """
        with self.transaction(f"deleting note {book_id}:{path}") as session:
            note = Note.query.filter_by(book_id=book_id, path=path).first()
            if note is None:
                return False
            session.delete(note)
        return True

    def delete_unused_tags(self, book_id):
        """Remove tags of a book that no note references anymore."""
        with self.transaction(f"deleting unused tags for {book_id}"):
            used = select(note_tags.c.tag_id)
            count = Tag.query.filter(
                Tag.book_id == book_id,
                Tag.id.not_in(used),
            ).delete(synchronize_session=False)

        if count:
            log.info(f"Removed {count} unused tags from book {book_id}")
        return count

    def _resolve_tags(self, book_id, names):
        if not names:
            return []

        existing = {
            tag.name: tag
            for tag in Tag.query.filter(Tag.book_id == book_id, Tag.name.in_(names)).all()
        }
        tags = []
        for name in names:
            tag = existing.get(name)
            if tag is None:
                tag = Tag(book_id=book_id, name=name)
                self.session.add(tag)
                existing[name] = tag
            tags.append(tag)
        return tags
