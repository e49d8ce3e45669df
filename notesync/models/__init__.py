"""Database models for the application."""

# Import models in the correct order to avoid circular dependencies
from notesync.models.user import User
from notesync.models.book import Book, SyncStatus, SyncStatusCode
from notesync.models.note import Note, NoteScope, Tag, note_tags
from notesync.models.post_record import PostRecord, PostStatus
