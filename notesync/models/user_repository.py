"""Repository for managing users in the database."""

from notesync.models.base_repository import BaseRepository
from notesync.models.user import User


class SqlAlchemyUserRepository(BaseRepository):
    """Repository for managing users using SQLAlchemy."""

    def __init__(self, db_instance=None):
        super().__init__(db_instance, User)

    def create(self, handle, did=None, bluesky_access_token=None):
        with self.transaction(f"creating user {handle}") as session:
            user = User(handle=handle, did=did, bluesky_access_token=bluesky_access_token)
            session.add(user)
        return user

    def get_by_handle(self, handle):
        with self.translate_errors(f"loading user {handle}"):
            return User.query.filter_by(handle=handle).first()
