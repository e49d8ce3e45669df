"""Client for publishing posts to Bluesky."""

import logging
from datetime import datetime, timezone

from notesync.errors import PostingError
from notesync.services.api_client import APIClient

log = logging.getLogger(__name__)

POST_COLLECTION = 'app.bsky.feed.post'


class BlueskyPostClient(APIClient):
    """Creates feed posts on behalf of a user through the AT Protocol XRPC API."""

    def connection_error(self, message):
        return PostingError(message)

    def http_error(self, response):
        try:
            detail = response.json().get('message') or response.text
        except ValueError:
            detail = response.text
        return PostingError(
            f"Bluesky returned HTTP {response.status_code}: {detail}",
            status_code=response.status_code,
        )

    def create_post(self, did, text, access_token=None, link=None):
        """Publish ``text`` as ``did`` and return ``{'uri': ..., 'cid': ...}``."""
        if not access_token:
            raise PostingError(f"No Bluesky session for {did}")

        record = {
            '$type': POST_COLLECTION,
            'text': text,
            'createdAt': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        }
        facets = link_facets(text, link)
        if facets:
            record['facets'] = facets

        response = self.request(
            'POST',
            '/xrpc/com.atproto.repo.createRecord',
            headers={'Authorization': f"Bearer {access_token}"},
            json={
                'repo': did,
                'collection': POST_COLLECTION,
                'record': record,
            },
        )

        try:
            data = response.json()
            return {'uri': data['uri'], 'cid': data['cid']}
        except (ValueError, KeyError) as e:
            raise PostingError(f"Unexpected createRecord response: {e}") from e


def link_facets(text, link):
    """Build a link facet so ``link`` renders as clickable. Offsets are UTF-8 bytes."""
    if not link or link not in text:
        return []

    encoded = text.encode('utf-8')
    start = encoded.find(link.encode('utf-8'))
    return [{
        'index': {'byteStart': start, 'byteEnd': start + len(link.encode('utf-8'))},
        'features': [{'$type': 'app.bsky.richtext.facet#link', 'uri': link}],
    }]
