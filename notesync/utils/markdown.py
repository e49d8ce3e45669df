"""Markdown helpers: tracked-file detection and note extraction."""

import posixpath
import re
from dataclasses import dataclass, field
from typing import List

import yaml

from notesync.models.note import NoteScope

TRACKED_EXTENSIONS = ('.md', '.markdown')

_FRONT_MATTER = re.compile(r'\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)', re.DOTALL)
_H1 = re.compile(r'^#[ \t]+(.+?)[ \t#]*$', re.MULTILINE)


@dataclass
class ParsedMarkdown:
    title: str
    body: str
    tags: List[str] = field(default_factory=list)
    scope: NoteScope = NoteScope.PUBLIC


def is_tracked_path(path):
    """Return True for paths whose content is synchronized as a note."""
    return bool(path) and path.lower().endswith(TRACKED_EXTENSIONS)


def title_from_path(path):
    """File name without its Markdown extension."""
    name = posixpath.basename(path)
    lowered = name.lower()
    for ext in TRACKED_EXTENSIONS:
        if lowered.endswith(ext):
            return name[:-len(ext)]
    return name


def _split_front_matter(text):
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text

    try:
        meta = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        # Not valid YAML; treat the block as ordinary content
        return {}, text

    if not isinstance(meta, dict):
        return {}, text
    return meta, text[match.end():]


def _parse_tags(raw):
    # An unquoted " #" starts a YAML comment, so "#tag" only survives when quoted
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(',')
    if not isinstance(raw, (list, tuple)):
        raw = [raw]

    tags = []
    for tag in raw:
        name = str(tag).strip().lstrip('#')
        if name and name not in tags:
            tags.append(name)
    return tags


def _parse_scope(meta):
    if str(meta.get('scope', '')).strip().lower() == NoteScope.PRIVATE.value:
        return NoteScope.PRIVATE
    if meta.get('private') is True:
        return NoteScope.PRIVATE
    return NoteScope.PUBLIC


def parse_markdown(text, path=None):
    """Extract title, body, tags and scope from a Markdown document.

    The title comes from front matter, then from the first level-1 heading
    (removed from the body), then from the file name when ``path`` is given.
    """
    meta, body = _split_front_matter(text or '')

    title = meta.get('title')
    title = str(title).strip() if title is not None else ''
    if not title:
        heading = _H1.search(body)
        if heading:
            title = heading.group(1).strip()
            body = body[:heading.start()] + body[heading.end():]

    if not title and path:
        title = title_from_path(path)

    return ParsedMarkdown(
        title=title,
        body=body.strip(),
        tags=_parse_tags(meta.get('tags')),
        scope=_parse_scope(meta),
    )
