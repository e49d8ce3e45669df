"""Background tasks for book synchronization."""

import logging

from notesync.services import get_services

log = logging.getLogger(__name__)


def run_manual_sync(app, book_id):
    """Run a full-listing sync for one book in the background."""
    with app.app_context():
        log.info(f"Starting background sync for book {book_id}")
        attempt = get_services(app).sync_service.sync_listing(book_id)
        log.info(f"Background sync for book {book_id} finished with status {attempt.status.name if attempt.status else 'unknown'}")
        return attempt


def queue_manual_sync(app, executor, book_id):
    """Queue a full-listing sync for a book."""
    return executor.submit(run_manual_sync, app, book_id)
