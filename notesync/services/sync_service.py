"""
Synchronization of a book's notes with its GitHub repository.

One call to ``sync_commits`` or ``sync_listing`` is one sync attempt. Attempts
for the same book never overlap: each one holds the book's lock from the
moment the book is re-read until its status has been written.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from notesync.errors import (
    ContentAuthError,
    ContentFetchError,
    ContentNetworkError,
    ContentNotFound,
    ContentRateLimited,
    PersistenceError,
    ResourceNotFoundError,
)
from notesync.models.book import SyncStatusCode
from notesync.services.api_client import retry_call
from notesync.services.reconciler import ReconcilePlan, reconcile_commits, reconcile_listing
from notesync.utils.dates import utcnow
from notesync.utils.keyed_lock import KeyedLock
from notesync.utils.markdown import parse_markdown
from notesync.utils.result import Err, capture

log = logging.getLogger(__name__)

INCREMENTAL = "incremental"
FULL_LISTING = "full"

RETRYABLE_FETCH_ERRORS = (ContentRateLimited, ContentNetworkError)


class AttemptAborted(ContentFetchError):
    """A queued fetch that was skipped because the attempt already failed."""


class BookRef(NamedTuple):
    """Plain copy of the book fields an attempt needs, safe to hand to threads."""

    id: str
    user_id: str
    owner: str
    repo: str
    installation_id: Optional[int]


@dataclass
class PathError:
    path: Optional[str]
    stage: str
    message: str

    def to_dict(self):
        return {'path': self.path, 'stage': self.stage, 'message': self.message}


@dataclass
class SyncAttempt:
    """What one attempt planned, what it applied and what went wrong."""

    book_id: str
    mode: str
    plan: ReconcilePlan = field(default_factory=ReconcilePlan)
    added: List[Any] = field(default_factory=list)
    updated: List[Any] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[PathError] = field(default_factory=list)
    fatal_error: Optional[Exception] = None
    status: Optional[SyncStatusCode] = None

    @property
    def succeeded(self):
        return self.fatal_error is None

    @property
    def synced(self):
        return len(self.added) + len(self.updated) + len(self.removed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'book_id': self.book_id,
            'mode': self.mode,
            'status': self.status.name if self.status else None,
            'synced': self.synced,
            'added': [note.path for note in self.added],
            'updated': [note.path for note in self.updated],
            'removed': list(self.removed),
            'skipped': list(self.skipped),
            'errors': [error.to_dict() for error in self.errors],
            'fatal_error': str(self.fatal_error) if self.fatal_error else None,
        }


class SyncService:
    """Applies reconciled changes to the note store and tracks book status."""

    def __init__(self, book_repository, note_repository, content_fetcher, *,
                 fetch_workers=4, max_retries=3, retry_delay=1.0, retry_backoff=2,
                 sleep=time.sleep, book_locks=None, dispatch=None):
        self.book_repository = book_repository
        self.note_repository = note_repository
        self.content_fetcher = content_fetcher
        self.fetch_workers = max(1, fetch_workers)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff
        self.sleep = sleep
        self.book_locks = book_locks or KeyedLock()
        # Schedules a full-listing attempt for a book id; set by the app factory
        self.dispatch = dispatch

    def sync_commits(self, book_id, commits, installation_id=None) -> SyncAttempt:
        """Incremental attempt driven by the commits of one push delivery."""
        with self.book_locks.hold(book_id):
            ref = _book_ref(self._load_book(book_id))
            if installation_id and installation_id != ref.installation_id:
                log.info(f"Installation for {ref.owner}/{ref.repo} changed to {installation_id}")
                try:
                    self.book_repository.update_installation(self._load_book(book_id), installation_id)
                except PersistenceError as e:
                    log.warning(f"Could not store installation {installation_id} for book {ref.id}: {e}")
                ref = ref._replace(installation_id=installation_id)

            attempt = SyncAttempt(book_id=ref.id, mode=INCREMENTAL)
            attempt.plan = reconcile_commits(commits)
            return self._run_attempt(ref, attempt)

    def sync_listing(self, book_id) -> SyncAttempt:
        """Full attempt comparing the whole remote tree with the stored notes."""
        with self.book_locks.hold(book_id):
            ref = _book_ref(self._load_book(book_id))
            attempt = SyncAttempt(book_id=ref.id, mode=FULL_LISTING)

            try:
                remote = retry_call(
                    self.content_fetcher.list_paths, ref.installation_id, ref.owner, ref.repo,
                    **self._retry_options()
                )
                stored = self.note_repository.list_paths(ref.id)
            except (ContentFetchError, PersistenceError) as e:
                log.error(f"Could not list {ref.owner}/{ref.repo} for book {ref.id}: {e}")
                attempt.fatal_error = e
                self._finish(ref, attempt)
                return attempt

            attempt.plan = reconcile_listing(remote, stored)
            return self._run_attempt(ref, attempt)

    def request_resync(self, user_id, owner, repo) -> bool:
        """Queue a full-listing attempt. True only means the request was accepted."""
        book = self.book_repository.find_by_owner_and_repo(owner, repo)
        if book is None or book.user_id != user_id:
            log.info(f"Resync of {owner}/{repo} refused for user {user_id}")
            return False
        if self.dispatch is None:
            raise RuntimeError("No background dispatcher configured for manual resync")

        self.dispatch(book.id)
        log.info(f"Queued manual resync for book {book.id}")
        return True

    def get_sync_status(self, book_id) -> Dict[str, Any]:
        sync_status = self.book_repository.get_sync_status(book_id)
        if sync_status is None:
            raise ResourceNotFoundError(f"Book {book_id} not found")
        return sync_status.to_dict()

    def _load_book(self, book_id):
        book = self.book_repository.get_by_id(book_id)
        if book is None:
            raise ResourceNotFoundError(f"Book {book_id} not found")
        return book

    def _retry_options(self):
        return {
            'max_tries': self.max_retries,
            'delay': self.retry_delay,
            'backoff': self.retry_backoff,
            'exceptions': RETRYABLE_FETCH_ERRORS,
            'sleep': self.sleep,
        }

    def _run_attempt(self, ref, attempt):
        plan = attempt.plan
        log.info(
            f"Sync attempt ({attempt.mode}) for book {ref.id}: "
            f"{len(plan.to_upsert)} to upsert, {len(plan.to_delete)} to delete, {len(plan.ignored)} ignored"
        )

        if self._apply_deletes(ref, plan.to_delete, attempt):
            self._apply_upserts(ref, plan.to_upsert, attempt)

        self._finish(ref, attempt)
        return attempt

    def _apply_deletes(self, ref, paths, attempt):
        """Delete-if-exists each path. Returns False when the attempt must stop."""
        for path in paths:
            try:
                if self.note_repository.delete_by_path(ref.id, path):
                    attempt.removed.append(path)
            except PersistenceError as e:
                if e.fatal:
                    attempt.fatal_error = e
                    return False
                log.warning(f"Could not delete {path} from book {ref.id}: {e}")
                attempt.errors.append(PathError(path, 'delete', e.message))
        return True

    def _apply_upserts(self, ref, paths, attempt):
        if not paths:
            return

        # Fetch the first path alone: a credentials failure surfaces before any
        # other request is made.
        first, rest = paths[0], paths[1:]
        if not self._store(ref, first, self._fetch(ref, first), attempt) or not rest:
            return

        abort = threading.Event()
        pool = ThreadPoolExecutor(
            max_workers=min(self.fetch_workers, len(rest)),
            thread_name_prefix=f"fetch-{ref.id[:8]}",
        )
        try:
            futures = [(path, pool.submit(self._fetch, ref, path, abort)) for path in rest]
            for path, future in futures:
                if not self._store(ref, path, future.result(), attempt):
                    abort.set()
                    break
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

    def _fetch(self, ref, path, abort=None):
        """Runs on fetch threads: network only, no database access."""
        if abort is not None and abort.is_set():
            return Err(AttemptAborted(f"Skipped {path}", path=path))
        return capture(
            retry_call, self.content_fetcher.fetch, ref.installation_id, ref.owner, ref.repo, path,
            errors=(ContentFetchError,),
            **self._retry_options()
        )

    def _store(self, ref, path, result, attempt):
        """Upsert one fetched file. Returns False when the attempt must stop."""
        if result.is_err():
            error = result.error
            if isinstance(error, ContentNotFound):
                log.info(f"{path} disappeared from {ref.owner}/{ref.repo} before it was fetched")
                attempt.skipped.append(path)
                return True
            if isinstance(error, ContentAuthError):
                log.error(f"Authentication failed fetching {path} for book {ref.id}: {error}")
                attempt.fatal_error = error
                return False
            log.warning(f"Failed to fetch {path} for book {ref.id}: {error}")
            attempt.errors.append(PathError(path, 'fetch', str(error)))
            return True

        parsed = parse_markdown(result.value, path)
        try:
            note, created = self.note_repository.upsert(
                ref.id, ref.user_id, path,
                title=parsed.title,
                body=parsed.body,
                scope=parsed.scope,
                tags=parsed.tags,
            )
        except PersistenceError as e:
            if e.fatal:
                attempt.fatal_error = e
                return False
            log.warning(f"Could not store {path} for book {ref.id}: {e}")
            attempt.errors.append(PathError(path, 'upsert', e.message))
            return True

        (attempt.added if created else attempt.updated).append(note)
        return True

    def _finish(self, ref, attempt):
        """Clean up tags and write the status transition for the attempt."""
        if attempt.succeeded and (attempt.removed or attempt.added or attempt.updated):
            try:
                self.note_repository.delete_unused_tags(ref.id)
            except PersistenceError as e:
                if e.fatal:
                    attempt.fatal_error = e
                else:
                    attempt.errors.append(PathError(None, 'tags', e.message))

        if attempt.succeeded:
            status, last_synced_at = SyncStatusCode.SYNCED, utcnow()
        else:
            # last_synced_at keeps the time of the last successful attempt
            status, last_synced_at = SyncStatusCode.ERROR, None

        try:
            self.book_repository.update_sync_status(ref.id, status, last_synced_at)
            attempt.status = status
        except PersistenceError as e:
            log.error(f"Could not record sync status for book {ref.id}: {e}")
            if attempt.fatal_error is None:
                attempt.fatal_error = e

        if attempt.succeeded:
            log.info(
                f"Book {ref.id} synced: {len(attempt.added)} added, {len(attempt.updated)} updated, "
                f"{len(attempt.removed)} removed, {len(attempt.errors)} errors"
            )
        else:
            log.error(
                f"Sync attempt for book {ref.id} failed: {attempt.fatal_error}",
                exc_info=attempt.fatal_error,
            )


def _book_ref(book):
    return BookRef(
        id=book.id,
        user_id=book.user_id,
        owner=book.owner,
        repo=book.repo,
        installation_id=book.installation_id,
    )
