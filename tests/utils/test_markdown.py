import pytest

from notesync.models.note import NoteScope
from notesync.utils.markdown import is_tracked_path, parse_markdown, title_from_path


@pytest.mark.parametrize('path, tracked', [
    ('a.md', True),
    ('docs/Guide.MD', True),
    ('post.markdown', True),
    ('image.png', False),
    ('md', False),
    ('', False),
])
def test_is_tracked_path(path, tracked):
    assert is_tracked_path(path) is tracked


def test_title_from_front_matter():
    parsed = parse_markdown("---\ntitle: From Meta\ntags: \"a, b , #c\"\n---\n# Heading\nBody")

    assert parsed.title == "From Meta"
    assert parsed.tags == ['a', 'b', 'c']
    assert parsed.body == "# Heading\nBody"


def test_unquoted_hash_in_front_matter_starts_a_comment():
    parsed = parse_markdown("---\ntags: a, b #c\n---\nBody")

    assert parsed.tags == ['a', 'b']


def test_tag_list_drops_leading_hash():
    parsed = parse_markdown("---\ntags: ['#a', b, '#a']\n---\nBody")

    assert parsed.tags == ['a', 'b']


def test_title_from_first_heading_is_removed_from_body():
    parsed = parse_markdown("Intro\n\n# The Title\n\nText\n\n# Second")

    assert parsed.title == "The Title"
    assert parsed.body == "Intro\n\n\n\nText\n\n# Second"


def test_title_falls_back_to_file_name():
    assert parse_markdown("just text", 'notes/My Note.md').title == "My Note"
    assert title_from_path('x/y/Post.Markdown') == "Post"


@pytest.mark.parametrize('front_matter, scope', [
    ('scope: private', NoteScope.PRIVATE),
    ('scope: PRIVATE', NoteScope.PRIVATE),
    ('private: true', NoteScope.PRIVATE),
    ('private: false', NoteScope.PUBLIC),
    ('scope: public', NoteScope.PUBLIC),
])
def test_scope(front_matter, scope):
    assert parse_markdown(f"---\n{front_matter}\n---\nbody").scope == scope


def test_invalid_front_matter_is_treated_as_content():
    text = "---\ntitle: [unclosed\n---\nbody"

    parsed = parse_markdown(text, 'a.md')

    assert parsed.title == "a"
    assert parsed.body == text


def test_empty_document():
    parsed = parse_markdown('', 'empty.md')

    assert parsed.title == "empty"
    assert parsed.body == ''
    assert parsed.tags == []
