"""Publishing of newly added notes to the social platform."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional

from notesync.errors import PersistenceError, PostingError
from notesync.models.post_record import PostStatus
from notesync.utils.result import Err, capture

log = logging.getLogger(__name__)

MAX_POST_LENGTH = 300
POST_TEMPLATE = "{title}\n\nPosted on @md!\n{link}"


class PreparedPost(NamedTuple):
    note_id: str
    user_id: str
    did: Optional[str]
    access_token: Optional[str]
    text: str
    link: str


class PostFanout:
    """Posts each note independently and records one PostRecord per note.

    Posting failures end up in the record; they are never raised to the caller.
    """

    def __init__(self, post_repository, user_repository, book_repository, post_client, *,
                 public_url, platform='bluesky', workers=4):
        self.post_repository = post_repository
        self.user_repository = user_repository
        self.book_repository = book_repository
        self.post_client = post_client
        self.public_url = public_url.rstrip('/')
        self.platform = platform
        self.workers = max(1, workers)

    def publish(self, notes) -> List:
        if not notes:
            return []

        users = {}
        prepared = []
        for note in notes:
            try:
                prepared.append(self._prepare(note, users))
            except PersistenceError as e:
                log.error(f"Could not prepare post for note {note.id}: {e}")
        if not prepared:
            return []

        with ThreadPoolExecutor(max_workers=min(self.workers, len(prepared)),
                                thread_name_prefix="post") as pool:
            results = list(pool.map(self._send, prepared))

        records = []
        for post, result in zip(prepared, results):
            record = self._record(post, result)
            if record is not None:
                records.append(record)
        return records

    def build_link(self, handle, owner, repo, path):
        return f"{self.public_url}/{handle}/{owner}/{repo}/{path}"

    def build_text(self, title, link):
        text = POST_TEMPLATE.format(title=title, link=link)
        if len(text) <= MAX_POST_LENGTH:
            return text

        room = MAX_POST_LENGTH - len(POST_TEMPLATE.format(title='', link=link)) - 1
        if room <= 0:
            return text[:MAX_POST_LENGTH]
        return POST_TEMPLATE.format(title=title[:room] + '…', link=link)

    def _prepare(self, note, users):
        """Read everything a post needs on the calling thread."""
        user = users.get(note.user_id)
        if user is None:
            user = self.user_repository.get_by_id(note.user_id)
            users[note.user_id] = user

        book = self.book_repository.get_by_id(note.book_id)
        handle = user.handle if user else note.user_id
        link = self.build_link(handle, book.owner, book.repo, note.path)

        return PreparedPost(
            note_id=note.id,
            user_id=note.user_id,
            did=user.did if user else None,
            access_token=user.bluesky_access_token if user else None,
            text=self.build_text(note.title, link),
            link=link,
        )

    def _send(self, post):
        if not post.did:
            return Err(PostingError(f"User {post.user_id} has no linked {self.platform} account"))
        return capture(
            self.post_client.create_post, post.did, post.text,
            access_token=post.access_token, link=post.link,
            errors=(PostingError,),
        )

    def _record(self, post, result):
        if result.is_ok():
            fields = {
                'status': PostStatus.POSTED,
                'post_uri': result.value.get('uri'),
                'post_cid': result.value.get('cid'),
            }
        else:
            log.warning(f"Posting note {post.note_id} failed: {result.error}")
            fields = {'status': PostStatus.ERROR, 'error_message': str(result.error)}

        try:
            return self.post_repository.create(post.note_id, post.user_id, platform=self.platform, **fields)
        except PersistenceError as e:
            log.error(f"Could not record post for note {post.note_id}: {e}")
            return None
