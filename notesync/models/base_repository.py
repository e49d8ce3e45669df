"""Base repository for database operations."""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError

from notesync.errors import PersistenceError
from notesync.extensions import db

logger = logging.getLogger(__name__)

# Errors that mean the store itself is unreachable rather than that one row was rejected
CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


class BaseRepository:
    """Base repository implementing common database operations."""

    def __init__(self, db_instance=None, model_class=None):
        """Initialize the repository.

        Args:
            db_instance: SQLAlchemy database instance
            model_class: Model class to use for queries
        """
        self.db = db_instance or db
        self.model_class = model_class

    @property
    def session(self):
        return self.db.session

    def get_by_id(self, id):
        """Get an entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity instance or None
        """
        if not self.model_class:
            raise NotImplementedError("Model class must be set in derived repository")

        with self.translate_errors(f"loading {self.model_class.__name__} {id}"):
            return self.session.get(self.model_class, id)

    @contextmanager
    def translate_errors(self, action):
        """Re-raise SQLAlchemy failures as PersistenceError."""
        try:
            yield
        except SQLAlchemyError as e:
            fatal = isinstance(e, CONNECTIVITY_ERRORS)
            logger.error(f"Error {action}: {e}")
            raise PersistenceError(f"Error {action}: {e}", fatal=fatal) from e

    @contextmanager
    def transaction(self, action):
        """Commit on success, roll back and translate the error otherwise."""
        try:
            yield self.session
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            fatal = isinstance(e, CONNECTIVITY_ERRORS)
            logger.error(f"Error {action}: {e}")
            raise PersistenceError(f"Error {action}: {e}", fatal=fatal) from e
