import uuid
from enum import Enum

from notesync.extensions import db
from notesync.utils.dates import utcnow


class PostStatus(Enum):
    POSTED = "posted"
    ERROR = "error"


class PostRecord(db.Model):
    """One attempt to publish a note. Written once, never updated."""

    __tablename__ = "post_records"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    note_id = db.Column(db.String(36), db.ForeignKey('notes.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(db.String(20), nullable=False)
    platform = db.Column(db.String(32), nullable=False)
    post_uri = db.Column(db.String(512), nullable=True)
    post_cid = db.Column(db.String(128), nullable=True)
    error_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    note = db.relationship('Note', back_populates='posts')

    @property
    def posted(self):
        return self.status == PostStatus.POSTED.value

    def to_dict(self):
        return {
            'id': self.id,
            'note_id': self.note_id,
            'status': self.status,
            'platform': self.platform,
            'post_uri': self.post_uri,
            'post_cid': self.post_cid,
            'error_message': self.error_message,
        }

    def __repr__(self):
        return f'<PostRecord {self.id}: {self.status}>'
