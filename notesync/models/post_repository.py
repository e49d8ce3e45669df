"""Repository for post records."""

import logging

from notesync.models.base_repository import BaseRepository
from notesync.models.post_record import PostRecord, PostStatus

log = logging.getLogger(__name__)


class SqlAlchemyPostRepository(BaseRepository):
    """Append-only store of publishing attempts."""

    def __init__(self, db_instance=None):
        super().__init__(db_instance, PostRecord)

    def create(self, note_id, user_id, status, platform, post_uri=None, post_cid=None, error_message=None):
        with self.transaction(f"recording post for note {note_id}") as session:
            record = PostRecord(
                note_id=note_id,
                user_id=user_id,
                status=status.value if isinstance(status, PostStatus) else status,
                platform=platform,
                post_uri=post_uri,
                post_cid=post_cid,
                error_message=error_message,
            )
            session.add(record)
        return record

    def list_by_note(self, note_id):
        with self.translate_errors(f"listing posts for note {note_id}"):
            return PostRecord.query.filter_by(note_id=note_id).order_by(PostRecord.created_at).all()
