"""
GitHub push webhook handling.

A delivery is verified against the raw body before anything else is looked at,
then mapped to one incremental sync attempt for the matching book.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from notesync.errors import RepositoryNotTracked, ValidationError, WebhookVerificationError
from notesync.services.reconciler import CommitChange

log = logging.getLogger(__name__)

EVENT_HEADER = 'X-GitHub-Event'
SIGNATURE_HEADER = 'X-Hub-Signature-256'
SIGNATURE_PREFIX = 'sha256='


@dataclass
class WebhookResult:
    synced: int = 0
    added: List[str] = field(default_factory=list)
    posted: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    status: Optional[str] = None
    ignored: bool = False

    def to_dict(self):
        data = {'synced': self.synced, 'added': self.added, 'posted': self.posted}
        if self.errors:
            data['errors'] = self.errors
        if self.status:
            data['status'] = self.status
        if self.ignored:
            data['ignored'] = True
        return data


def sign(secret, raw_body):
    """Return the ``sha256=<hex>`` signature GitHub sends for ``raw_body``."""
    digest = hmac.new(secret.encode('utf-8'), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


class WebhookService:
    def __init__(self, secret, book_repository, sync_service, post_fanout):
        self.secret = secret
        self.book_repository = book_repository
        self.sync_service = sync_service
        self.post_fanout = post_fanout

    def verify_signature(self, raw_body, signature):
        if not self.secret:
            log.warning("Rejected webhook delivery: no webhook secret configured")
            raise WebhookVerificationError("Webhook secret is not configured")
        if not signature:
            log.warning("Rejected webhook delivery: missing signature")
            raise WebhookVerificationError("Missing signature")
        if not signature.startswith(SIGNATURE_PREFIX):
            log.warning("Rejected webhook delivery: unsupported signature format")
            raise WebhookVerificationError("Unsupported signature format")

        if not hmac.compare_digest(signature.encode('utf-8'), sign(self.secret, raw_body).encode('utf-8')):
            log.warning("Rejected webhook delivery: invalid signature")
            raise WebhookVerificationError("Invalid signature")

    def handle(self, raw_body, headers) -> WebhookResult:
        """Verify and apply one delivery.

        Raises WebhookVerificationError for signature failures and
        ValidationError for deliveries that cannot be interpreted. Untracked
        repositories and non-push events produce an empty result.
        """
        headers = {key.lower(): value for key, value in headers.items()}
        self.verify_signature(raw_body, headers.get(SIGNATURE_HEADER.lower()))

        event = headers.get(EVENT_HEADER.lower())
        if not event:
            raise ValidationError(f"Missing {EVENT_HEADER} header")
        if event != 'push':
            log.info(f"Ignoring {event} event")
            return WebhookResult(ignored=True)

        owner, repo, installation_id, commits = self._parse(raw_body)
        try:
            book = self._find_book(owner, repo)
        except RepositoryNotTracked as e:
            log.info(str(e))
            return WebhookResult(ignored=True)

        attempt = self.sync_service.sync_commits(book.id, commits, installation_id=installation_id)

        records = self.post_fanout.publish(attempt.added)

        return WebhookResult(
            synced=attempt.synced,
            added=[note.id for note in attempt.added],
            posted=[record.note_id for record in records if record.posted],
            errors=[error.to_dict() for error in attempt.errors],
            status=attempt.status.name if attempt.status else None,
        )

    def _find_book(self, owner, repo):
        book = self.book_repository.find_by_owner_and_repo(owner, repo)
        if book is None:
            raise RepositoryNotTracked(owner, repo)
        return book

    def _parse(self, raw_body):
        try:
            payload = json.loads(raw_body)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed JSON payload: {e}")
        if not isinstance(payload, dict):
            raise ValidationError("Payload must be a JSON object")

        repository = payload.get('repository') or {}
        owner = (repository.get('owner') or {}).get('login')
        repo = repository.get('name')
        if not owner or not repo:
            raise ValidationError("Payload is missing repository.owner.login or repository.name")

        installation_id = (payload.get('installation') or {}).get('id')

        commits = payload.get('commits')
        if commits is None:
            commits = []
        if not isinstance(commits, list):
            raise ValidationError("commits: expected a list")

        return owner, repo, installation_id, [CommitChange.from_payload(c) for c in commits]
