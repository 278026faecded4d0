"""Tests for dotproject.pm.indexer module."""

import json

from dotproject.lib.types import EntityKind
from dotproject.pm.indexer import build_docs_index, build_story_index, reindex

from conftest import NOW, read_json


def _write_record(project, kind, record):
    directory = project.kind_dir(kind)
    directory.mkdir(parents=True, exist_ok=True)
    (directory / f"{record['id']}.json").write_text(json.dumps(record))


class TestStoryIndex:
    def test_stories_and_epics(self, project):
        _write_record(project, EntityKind.EPIC, {"id": "EP-0001", "title": "Auth", "key": "e1"})
        _write_record(project, EntityKind.STORY, {"id": "ST-0001", "title": "Login", "epic": "EP-0001", "status": "ready"})
        _write_record(project, EntityKind.STORY, {"id": "ST-0002", "title": "Logout"})

        result = build_story_index(project, NOW)

        index = read_json(result.path)
        assert result.path == project.project_dir / "index.json"
        assert result.counts == {"stories": 2, "epics": 1}
        assert index["timestamp"] == NOW
        assert index["epics"] == [{"id": "EP-0001", "title": "Auth"}]
        assert index["stories"][0] == {"id": "ST-0001", "title": "Login", "epic": "EP-0001", "risk": None, "status": "ready"}
        assert index["stories"][1]["status"] == "draft"

    def test_empty_project(self, project):
        result = build_story_index(project, NOW)
        assert result.counts == {"stories": 0, "epics": 0}

    def test_unreadable_record_skipped(self, project, caplog):
        stories = project.kind_dir(EntityKind.STORY)
        stories.mkdir()
        (stories / "ST-0001.json").write_text("{broken")
        result = build_story_index(project, NOW)
        assert result.counts["stories"] == 0
        assert "Skipping unreadable record" in caplog.text

    def test_invalid_utf8_record_skipped(self, project, caplog):
        _write_record(project, EntityKind.STORY, {"id": "ST-0001", "title": "Login"})
        (project.kind_dir(EntityKind.STORY) / "ST-0002.json").write_bytes(b'{"id": "ST-0002", "title": "\xff"}')

        result = build_story_index(project, NOW)

        assert result.counts["stories"] == 1
        assert "not valid UTF-8" in caplog.text


class TestDocsIndex:
    def test_docs_and_ideas(self, project):
        project.docs_dir.mkdir()
        project.ideas_dir.mkdir()
        (project.docs_dir / "arch.md").write_text("---\nid: DOC-0001\ntitle: Architecture\ncreated: 2025-10-26T21:50:00Z\n---\nText\n")
        (project.ideas_dir / "offline.md").write_text("---\nid: IDEA-0001\ntitle: Offline\ntags: [sync]\n---\n")
        (project.ideas_dir / "notes.md").write_text("No front matter here\n")

        result = build_docs_index(project, NOW)

        index = read_json(result.path)
        assert result.path == project.docs_dir / "index.json"
        assert result.counts == {"docs": 1, "ideas": 1}
        doc, idea = index["docs"]
        assert doc["created"] == "2025-10-26T21:50:00Z"
        assert doc["kind"] == "doc"
        assert doc["path"] == "docs/arch.md"
        assert idea["tags"] == ["sync"]
        assert idea["kind"] == "idea"

    def test_malformed_front_matter_skipped(self, project, caplog):
        project.ideas_dir.mkdir()
        (project.ideas_dir / "bad.md").write_text("---\nid: [x\n---\n")
        result = build_docs_index(project, NOW)
        assert result.counts["ideas"] == 0
        assert "Skipping" in caplog.text


def test_invalid_utf8_doc_skipped(project, caplog):
    project.docs_dir.mkdir()
    (project.docs_dir / "bad.md").write_bytes(b"---\nid: DOC-0001\ntitle: \xff\n---\n")
    result = build_docs_index(project, NOW)
    assert result.counts["docs"] == 0
    assert "Skipping" in caplog.text


def test_reindex_builds_both(project):
    results = reindex(project, NOW)
    assert [r.path.name for r in results] == ["index.json", "index.json"]
    assert (project.project_dir / "index.json").exists()
    assert (project.docs_dir / "index.json").exists()
