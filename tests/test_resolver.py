"""Tests for dotproject.pm.resolver module."""

import re
import uuid

import pytest

from dotproject.lib.errors import ParseError, UnresolvedReferenceError
from dotproject.lib.types import EntityKind, PromptOwner
from dotproject.pm.batch import batch_from_document
from dotproject.pm.resolver import resolve_batch, utc_now
from dotproject.pm.sequence import SequenceAllocator, SequenceState

from conftest import NOW


def _resolve(doc, state=None, **kwargs):
    allocator = SequenceAllocator(state or SequenceState())
    kwargs.setdefault("now", NOW)
    return resolve_batch(batch_from_document(doc), allocator, **kwargs), allocator


class TestIdAssignment:
    def test_assigns_ids_in_processing_order(self):
        resolved, allocator = _resolve({
            "tasks": [{"title": "t"}],
            "stories": [{"title": "s1"}, {"title": "s2"}],
            "epics": [{"title": "e"}],
        })
        assert resolved.plan_id == "PLAN-0001"
        assert resolved.epics[0]["id"] == "EP-0001"
        assert [s["id"] for s in resolved.stories] == ["ST-0001", "ST-0002"]
        assert resolved.tasks[0]["id"] == "TK-0001"
        assert allocator.state.model_dump() == {"epics": 2, "stories": 3, "tasks": 2, "plans": 2}

    def test_ids_match_format(self):
        resolved, _ = _resolve({"epics": [{}] * 3, "stories": [{}] * 3, "tasks": [{}] * 3})
        for kind, record in resolved.all_records():
            assert re.match(r"^(EP|ST|TK)-\d{4,}$", record["id"])

    def test_explicit_id_kept(self):
        resolved, _ = _resolve({"epics": [{"id": "EP-0042", "title": "kept"}]})
        assert resolved.epics[0]["id"] == "EP-0042"

    def test_explicit_ids_never_reissued(self):
        resolved, _ = _resolve({"epics": [{"title": "new"}, {"id": "EP-0001", "title": "old"}]})
        ids = [e["id"] for e in resolved.epics]
        assert ids == ["EP-0002", "EP-0001"]

    def test_continues_from_persisted_counters(self):
        resolved, _ = _resolve({"stories": [{}]}, SequenceState(stories=17, plans=4))
        assert resolved.stories[0]["id"] == "ST-0017"
        assert resolved.plan_id == "PLAN-0004"

    def test_input_batch_untouched(self):
        batch = batch_from_document({"epics": [{"title": "e"}]})
        resolve_batch(batch, SequenceAllocator(SequenceState()), now=NOW)
        assert "id" not in batch.epics[0]


class TestStamping:
    def test_defaults_filled(self):
        resolved, _ = _resolve({"stories": [{"title": "s"}]})
        story = resolved.stories[0]
        assert story["status"] == "draft"
        assert story["created"] == NOW
        assert story["updated"] == NOW
        assert story["planId"] == "PLAN-0001"
        uuid.UUID(story["uuid"])

    def test_explicit_values_kept(self):
        resolved, _ = _resolve({"stories": [{
            "status": "ready",
            "created": "2024-01-01T00:00:00Z",
            "updated": "2024-01-02T00:00:00Z",
            "uuid": "fixed",
        }]})
        story = resolved.stories[0]
        assert story["status"] == "ready"
        assert story["created"] == "2024-01-01T00:00:00Z"
        assert story["updated"] == "2024-01-02T00:00:00Z"
        assert story["uuid"] == "fixed"

    @pytest.mark.parametrize("status", [None, ""])
    def test_empty_status_gets_default(self, status):
        resolved, _ = _resolve({"stories": [{"status": status}], "tasks": [{"status": status}]})
        assert resolved.stories[0]["status"] == "draft"
        assert resolved.tasks[0]["status"] == "draft"

    def test_only_stories_get_uuid(self):
        resolved, _ = _resolve({"epics": [{}], "tasks": [{}]})
        assert "uuid" not in resolved.epics[0]
        assert "uuid" not in resolved.tasks[0]

    def test_utc_now_format(self):
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$", utc_now())


class TestKeyResolution:
    def test_story_epic_key_resolved(self):
        resolved, _ = _resolve({
            "epics": [{"key": "myKey", "title": "e"}],
            "stories": [{"title": "s", "epic": "myKey"}],
        })
        assert resolved.stories[0]["epic"] == resolved.epics[0]["id"] == "EP-0001"
        assert resolved.key_map[EntityKind.EPIC] == {"myKey": "EP-0001"}

    def test_task_references_resolved(self):
        resolved, _ = _resolve({
            "epics": [{"key": "e"}],
            "stories": [{"key": "s", "epic": "e"}],
            "tasks": [{"story": "s", "epic": "e"}],
        })
        assert resolved.tasks[0]["story"] == "ST-0001"
        assert resolved.tasks[0]["epic"] == "EP-0001"

    def test_existing_ids_not_rewritten(self):
        resolved, _ = _resolve({
            "epics": [{"key": "EP-0009"}],
            "stories": [{"epic": "EP-0003"}],
        })
        assert resolved.stories[0]["epic"] == "EP-0003"

    def test_unresolved_key_kept(self):
        resolved, _ = _resolve({"stories": [{"epic": "ghost"}]})
        assert resolved.stories[0]["epic"] == "ghost"
        assert [(u.record_id, u.field, u.value) for u in resolved.unresolved] == [("ST-0001", "epic", "ghost")]

    def test_unresolved_key_error_policy(self):
        with pytest.raises(UnresolvedReferenceError) as exc:
            _resolve({"stories": [{"epic": "ghost"}, {"epic": "phantom"}]}, unresolved="error")
        assert len(exc.value.references) == 2

    def test_keys_are_per_kind(self):
        resolved, _ = _resolve({
            "stories": [{"key": "x"}],
            "tasks": [{"epic": "x"}],
        })
        assert resolved.tasks[0]["epic"] == "x"
        assert resolved.unresolved

    def test_duplicate_key_last_wins(self, caplog):
        resolved, _ = _resolve({
            "epics": [{"key": "dup"}, {"key": "dup"}],
            "stories": [{"epic": "dup"}],
        })
        assert resolved.stories[0]["epic"] == "EP-0002"
        assert "Duplicate epic key 'dup'" in caplog.text


class TestPrompts:
    def test_explicit_prompt_targets(self):
        resolved, _ = _resolve({
            "prompts": [
                {"storyId": "ST-0007", "content": "story body"},
                {"taskId": "TK-0002", "content": "task body"},
            ],
        })
        targets = [(p.owner, p.owner_id, p.body) for p in resolved.prompts]
        assert targets == [
            (PromptOwner.STORY, "ST-0007", "story body"),
            (PromptOwner.TASK, "TK-0002", "task body"),
        ]

    def test_prompt_owner_key_resolved(self):
        resolved, _ = _resolve({
            "stories": [{"key": "login"}],
            "prompts": [{"storyId": "login", "content": "x"}],
        })
        assert resolved.prompts[0].owner_id == "ST-0001"

    def test_unknown_prompt_owner_rejected(self):
        with pytest.raises(ParseError, match=r"prompts\[0\]: storyId 'login' is neither a story ID"):
            _resolve({"prompts": [{"storyId": "login", "content": "x"}]})

    def test_prompt_owner_path_rejected(self):
        with pytest.raises(ParseError):
            _resolve({"prompts": [{"taskId": "../../outside", "content": "x"}]})

    def test_inline_prompt_uses_allocated_id(self):
        resolved, _ = _resolve({
            "tasks": [{"title": "t", "prompt": {"role": "dev", "intent": "ship it"}}],
        })
        prompt = resolved.prompts[0]
        assert prompt.owner is PromptOwner.TASK
        assert prompt.owner_id == "TK-0001"
        assert "**Role:** dev" in prompt.body
        assert "**Intent:** ship it" in prompt.body

    def test_counts(self):
        resolved, _ = _resolve({
            "epics": [{}],
            "stories": [{"prompt": "inline"}],
            "prompts": [{"taskId": "TK-0001"}],
        })
        assert resolved.counts() == {"epics": 1, "stories": 1, "tasks": 0, "prompts": 2}
