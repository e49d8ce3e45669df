import uuid

from notesync.extensions import db
from notesync.utils.dates import utcnow


class User(db.Model):
    """Owner of books, notes and post records."""

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    handle = db.Column(db.String(255), index=True, unique=True, nullable=False)
    did = db.Column(db.String(255), unique=True, nullable=True)  # Bluesky DID
    bluesky_access_token = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    books = db.relationship('Book', back_populates='user', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<User {self.handle}>'
