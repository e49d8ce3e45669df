"""Book and sync status models."""

import uuid
from enum import Enum

from notesync.extensions import db
from notesync.utils.dates import utcnow


class SyncStatusCode(Enum):
    WAITING = "waiting"
    SYNCED = "synced"
    ERROR = "error"


class Book(db.Model):
    """A tracked GitHub repository belonging to one user."""

    __tablename__ = "books"
    __table_args__ = (
        db.UniqueConstraint('owner', 'repo', name='uq_books_owner_repo'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    owner = db.Column(db.String(255), nullable=False)
    repo = db.Column(db.String(255), nullable=False)
    installation_id = db.Column(db.Integer, nullable=True)
    name = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship('User', back_populates='books')
    sync_status = db.relationship(
        'SyncStatus', back_populates='book', uselist=False, cascade='all, delete-orphan'
    )
    notes = db.relationship('Note', back_populates='book', cascade='all, delete-orphan')
    tags = db.relationship('Tag', back_populates='book', cascade='all, delete-orphan')

    @property
    def full_name(self):
        return f"{self.owner}/{self.repo}"

    def __repr__(self):
        return f'<Book {self.full_name}>'


class SyncStatus(db.Model):
    """Outcome of the most recent sync attempt for a book."""

    __tablename__ = "sync_statuses"

    book_id = db.Column(db.String(36), db.ForeignKey('books.id', ondelete='CASCADE'), primary_key=True)
    status = db.Column(db.String(20), nullable=False, default=SyncStatusCode.WAITING.value)
    last_synced_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    book = db.relationship('Book', back_populates='sync_status')

    @property
    def code(self):
        return SyncStatusCode(self.status)

    def to_dict(self):
        return {
            'status': self.code.name,
            'lastSyncedAt': self.last_synced_at.isoformat() if self.last_synced_at else None,
        }

    def __repr__(self):
        return f'<SyncStatus {self.book_id}: {self.status}>'
