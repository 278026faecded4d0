"""Tests for dotproject.lib.frontmatter module."""

import pytest

from dotproject.lib import frontmatter
from dotproject.lib.errors import ParseError


def test_parses_metadata_and_body():
    meta, body = frontmatter.parse("---\nid: IDEA-0001\ntitle: Offline\ntags: [sync]\n---\n\nBody.\n")
    assert meta == {"id": "IDEA-0001", "title": "Offline", "tags": ["sync"]}
    assert body == "Body.\n"


def test_no_front_matter():
    meta, body = frontmatter.parse("# Heading\n")
    assert meta == {}
    assert body == "# Heading\n"


def test_empty_block():
    meta, _ = frontmatter.parse("---\n---\nbody")
    assert meta == {}


def test_unterminated_block():
    with pytest.raises(ParseError, match="no closing delimiter"):
        frontmatter.parse("---\nid: x\n", "doc.md")


def test_invalid_yaml():
    with pytest.raises(ParseError, match="invalid YAML"):
        frontmatter.parse("---\nid: [x\n---\n")


def test_metadata_must_be_mapping():
    with pytest.raises(ParseError, match="mapping"):
        frontmatter.parse("---\n- a\n- b\n---\n")
