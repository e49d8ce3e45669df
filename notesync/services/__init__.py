"""Explicit construction of the application's service graph."""

import atexit
import logging
from dataclasses import dataclass
from typing import Any

from flask import current_app

log = logging.getLogger(__name__)

EXTENSION_KEY = 'notesync'


@dataclass
class Services:
    """Every long-lived collaborator, built once per application."""

    user_repository: Any
    book_repository: Any
    note_repository: Any
    post_repository: Any
    content_fetcher: Any
    post_client: Any
    sync_service: Any
    post_fanout: Any
    webhook_service: Any
    executor: Any


def build_services(app, content_fetcher=None, post_client=None):
    """Wire repositories, clients and services from ``app.config``.

    ``content_fetcher`` and ``post_client`` replace the HTTP-backed clients,
    which is how tests run the whole pipeline offline.
    """
    from notesync.extensions import db
    from notesync.models.book_repository import SqlAlchemyBookRepository
    from notesync.models.note_repository import SqlAlchemyNoteRepository
    from notesync.models.post_repository import SqlAlchemyPostRepository
    from notesync.models.user_repository import SqlAlchemyUserRepository
    from notesync.services.bluesky_client import BlueskyPostClient
    from notesync.services.content_fetcher import GitHubContentFetcher
    from notesync.services.post_fanout import PostFanout
    from notesync.services.sync_service import SyncService
    from notesync.services.webhook_service import WebhookService
    from notesync.tasks.executor import BackgroundExecutor
    from notesync.tasks.sync_tasks import queue_manual_sync

    config = app.config

    user_repository = SqlAlchemyUserRepository(db)
    book_repository = SqlAlchemyBookRepository(db)
    note_repository = SqlAlchemyNoteRepository(db)
    post_repository = SqlAlchemyPostRepository(db)

    if content_fetcher is None:
        content_fetcher = GitHubContentFetcher(
            config.get('GITHUB_APP_ID'),
            config.get('GITHUB_PRIVATE_KEY'),
            base_url=config.get('GITHUB_API_URL', 'https://api.github.com'),
            timeout=config.get('HTTP_TIMEOUT', 10),
        )
    if post_client is None:
        post_client = BlueskyPostClient(
            config.get('BLUESKY_SERVICE_URL', 'https://bsky.social'),
            timeout=config.get('HTTP_TIMEOUT', 10),
        )

    executor = BackgroundExecutor(max_workers=config.get('TASK_WORKERS', 2))
    atexit.register(executor.shutdown, wait=False)

    sync_service = SyncService(
        book_repository,
        note_repository,
        content_fetcher,
        fetch_workers=config.get('SYNC_FETCH_WORKERS', 4),
        max_retries=config.get('SYNC_FETCH_RETRIES', 3),
        retry_delay=config.get('SYNC_RETRY_DELAY', 1.0),
        retry_backoff=config.get('SYNC_RETRY_BACKOFF', 2),
        dispatch=lambda book_id: queue_manual_sync(app, executor, book_id),
    )
    post_fanout = PostFanout(
        post_repository,
        user_repository,
        book_repository,
        post_client,
        public_url=config.get('PUBLIC_URL', 'http://localhost:8000'),
        platform=config.get('POST_PLATFORM', 'bluesky'),
        workers=config.get('POST_WORKERS', 4),
    )
    webhook_service = WebhookService(
        config.get('GITHUB_WEBHOOK_SECRET'),
        book_repository,
        sync_service,
        post_fanout,
    )

    services = Services(
        user_repository=user_repository,
        book_repository=book_repository,
        note_repository=note_repository,
        post_repository=post_repository,
        content_fetcher=content_fetcher,
        post_client=post_client,
        sync_service=sync_service,
        post_fanout=post_fanout,
        webhook_service=webhook_service,
        executor=executor,
    )
    app.extensions[EXTENSION_KEY] = services
    log.debug("Service graph built")
    return services


def get_services(app=None) -> Services:
    """Return the services of ``app`` or of the current application."""
    app = app or current_app
    return app.extensions[EXTENSION_KEY]
