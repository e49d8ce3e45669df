"""
GitHub content access scoped to an App installation.

The sync pipeline only depends on the ``ContentFetcher`` protocol;
``GitHubContentFetcher`` is the production implementation backed by the
GitHub REST API.
"""

import base64
import logging
import threading
import time
from datetime import datetime, timezone
from typing import List, Optional, Protocol
from urllib.parse import quote

import jwt

from notesync.errors import (
    ContentAuthError,
    ContentFetchError,
    ContentNetworkError,
    ContentNotFound,
    ContentRateLimited,
)
from notesync.services.api_client import APIClient

log = logging.getLogger(__name__)

# Refresh installation tokens this many seconds before GitHub expires them
TOKEN_REFRESH_MARGIN = 60


class ContentFetcher(Protocol):
    def fetch(self, installation_id: int, owner: str, repo: str, path: str, ref: Optional[str] = None) -> str:
        ...

    def list_paths(self, installation_id: int, owner: str, repo: str, ref: Optional[str] = None) -> List[str]:
        ...


class GitHubContentFetcher(APIClient):
    """Fetches repository files with installation access tokens."""

    def __init__(self, app_id, private_key, base_url='https://api.github.com', timeout=10,
                 session=None, clock=time.time):
        super().__init__(base_url, timeout=timeout, session=session)
        self.app_id = app_id
        self.private_key = private_key
        self.clock = clock
        self._tokens = {}
        self._tokens_lock = threading.Lock()

    def connection_error(self, message):
        return ContentNetworkError(message)

    def http_error(self, response):
        status = response.status_code
        message = f"GitHub returned HTTP {status} for {response.request.url if response.request else 'request'}"

        if status == 429 or (status == 403 and _is_rate_limited(response)):
            return ContentRateLimited(message, status_code=status)
        if status in (401, 403):
            return ContentAuthError(message, status_code=status)
        if status == 404:
            return ContentNotFound(message, status_code=status)
        if status >= 500:
            return ContentNetworkError(message, status_code=status)
        return ContentFetchError(message, status_code=status)

    def _app_jwt(self):
        if not self.app_id or not self.private_key:
            raise ContentAuthError("GitHub App credentials are not configured")

        now = int(self.clock())
        payload = {
            'iat': now - 60,  # allow for clock drift
            'exp': now + 540,
            'iss': str(self.app_id),
        }
        return jwt.encode(payload, self.private_key, algorithm='RS256')

    def installation_token(self, installation_id):
        """Return a cached installation token, exchanging a fresh one when needed."""
        if installation_id is None:
            raise ContentAuthError("Book has no GitHub App installation")

        with self._tokens_lock:
            cached = self._tokens.get(installation_id)
            if cached and cached[1] - TOKEN_REFRESH_MARGIN > self.clock():
                return cached[0]

        try:
            response = self.request(
                'POST',
                f"/app/installations/{installation_id}/access_tokens",
                headers={
                    'Authorization': f"Bearer {self._app_jwt()}",
                    'Accept': 'application/vnd.github+json',
                },
            )
        except (ContentNotFound, ContentAuthError) as e:
            # A missing installation is a credentials problem, not a missing file
            raise ContentAuthError(
                f"Could not obtain token for installation {installation_id}: {e}",
                status_code=e.status_code,
            ) from e

        data = response.json()
        token = data['token']
        expires_at = _parse_timestamp(data.get('expires_at')) or self.clock() + 3600

        with self._tokens_lock:
            self._tokens[installation_id] = (token, expires_at)
        log.debug(f"Obtained installation token for {installation_id}")
        return token

    def forget_token(self, installation_id):
        with self._tokens_lock:
            self._tokens.pop(installation_id, None)

    def _get(self, installation_id, endpoint, params=None):
        token = self.installation_token(installation_id)
        try:
            return self.request(
                'GET',
                endpoint,
                headers={
                    'Authorization': f"token {token}",
                    'Accept': 'application/vnd.github+json',
                },
                params=params,
            )
        except ContentAuthError:
            self.forget_token(installation_id)
            raise

    def fetch(self, installation_id, owner, repo, path, ref=None):
        """Return the decoded text of one file."""
        params = {'ref': ref} if ref else None
        try:
            response = self._get(
                installation_id,
                f"/repos/{owner}/{repo}/contents/{quote(path)}",
                params=params,
            )
        except ContentFetchError as e:
            e.path = path
            raise

        data = response.json()
        if isinstance(data, list):
            raise ContentNotFound(f"{path} is a directory, not a file", path=path)
        if data.get('type') not in (None, 'file'):
            raise ContentNotFound(f"{path} is a {data.get('type')}, not a file", path=path)

        content = data.get('content')
        if not content:
            if data.get('size') == 0:
                return ''
            raise ContentNotFound(f"Content not found in response for {path}", path=path)

        if data.get('encoding', 'base64') != 'base64':
            raise ContentFetchError(f"Unsupported encoding {data.get('encoding')} for {path}", path=path)

        return base64.b64decode(content).decode('utf-8', errors='replace')

    def list_paths(self, installation_id, owner, repo, ref=None):
        """Return every file path in the repository tree.

        A truncated tree is an error: a partial listing would make stored
        notes look deleted upstream.
        """
        try:
            response = self._get(
                installation_id,
                f"/repos/{owner}/{repo}/git/trees/{quote(ref or 'HEAD')}",
                params={'recursive': '1'},
            )
        except ContentFetchError as e:
            # GitHub answers 409 for a repository with no commits yet
            if e.status_code == 409:
                log.info(f"{owner}/{repo} is empty")
                return []
            raise

        data = response.json()
        if data.get('truncated'):
            raise ContentFetchError(f"Tree listing for {owner}/{repo} was truncated by GitHub")

        return [entry['path'] for entry in data.get('tree', []) if entry.get('type') == 'blob']


def _is_rate_limited(response):
    if response.headers.get('X-RateLimit-Remaining') == '0':
        return True
    try:
        message = str(response.json().get('message', ''))
    except ValueError:
        return False
    return 'rate limit' in message.lower()


def _parse_timestamp(value):
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, '%Y-%m-%dT%H:%M:%SZ')
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc).timestamp()
