"""Note and tag models."""

import uuid
from enum import Enum

from notesync.extensions import db
from notesync.utils.dates import utcnow


class NoteScope(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


note_tags = db.Table(
    'note_tags',
    db.Column('note_id', db.String(36), db.ForeignKey('notes.id', ondelete='CASCADE'), primary_key=True),
    db.Column('tag_id', db.String(36), db.ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
)


class Note(db.Model):
    """The synced representation of one Markdown file in a book."""

    __tablename__ = "notes"
    __table_args__ = (
        db.UniqueConstraint('book_id', 'path', name='uq_notes_book_path'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = db.Column(db.String(36), db.ForeignKey('books.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    path = db.Column(db.String(1024), nullable=False)
    title = db.Column(db.String(1024), nullable=False)
    body = db.Column(db.Text, nullable=False, default='')
    scope = db.Column(db.String(20), nullable=False, default=NoteScope.PUBLIC.value)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    book = db.relationship('Book', back_populates='notes')
    tags = db.relationship('Tag', secondary=note_tags, back_populates='notes')
    posts = db.relationship('PostRecord', back_populates='note', cascade='all, delete-orphan')

    @property
    def tag_names(self):
        return sorted(tag.name for tag in self.tags)

    def to_dict(self):
        return {
            'id': self.id,
            'book_id': self.book_id,
            'path': self.path,
            'title': self.title,
            'scope': self.scope,
            'tags': self.tag_names,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Note {self.book_id}:{self.path}>'


class Tag(db.Model):
    """Tag collected from note front matter, scoped to one book."""

    __tablename__ = "tags"
    __table_args__ = (
        db.UniqueConstraint('book_id', 'name', name='uq_tags_book_name'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    book_id = db.Column(db.String(36), db.ForeignKey('books.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    book = db.relationship('Book', back_populates='tags')
    notes = db.relationship('Note', secondary=note_tags, back_populates='tags')

    def __repr__(self):
        return f'<Tag {self.name}>'
