"""Shared fixtures for dotproject tests."""

import json

import pytest

from dotproject.lib.config import ProjectPaths

STORY_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "title", "status", "created", "updated"],
    "properties": {
        "id": {"type": "string"},
        "title": {"type": "string"},
        "uuid": {"type": "string"},
        "status": {"type": "string"},
        "epic": {"type": "string"},
        "created": {"type": "string", "format": "date-time"},
        "updated": {"type": "string", "format": "date-time"},
    },
}

NOW = "2025-10-26T21:50:00Z"


@pytest.fixture
def project(tmp_path):
    """Empty project: .project/ plus a story schema."""
    (tmp_path / ".project").mkdir()
    schemas = tmp_path / "schemas"
    schemas.mkdir()
    (schemas / "story.json").write_text(json.dumps(STORY_SCHEMA))
    return ProjectPaths(tmp_path)


def read_json(path):
    return json.loads(path.read_text())
