"""Tests for dotproject.lib.types module."""

import pytest

from dotproject.lib.types import EntityKind, PromptOwner


class TestEntityKind:
    @pytest.mark.parametrize("value", ["EP-0001", "EP0001", "EP-12345"])
    def test_looks_like_id(self, value):
        assert EntityKind.EPIC.looks_like_id(value)

    @pytest.mark.parametrize("value", ["EP-001", "EP1", "ST-0001", "ep-0001", "EP-0001.json", "../EP-0001", None, 1])
    def test_not_an_id(self, value):
        assert not EntityKind.EPIC.looks_like_id(value)

    def test_id_number(self):
        assert EntityKind.TASK.id_number("TK-0042") == 42
        assert EntityKind.TASK.id_number("TK0042") == 42
        assert EntityKind.TASK.id_number("TK-42") is None

    def test_plan_ids(self):
        assert EntityKind.PLAN.looks_like_id("PLAN-0003")
        assert EntityKind.PLAN.suffix == ".yaml"

    def test_from_tag(self):
        assert EntityKind.from_tag("story") is EntityKind.STORY
        with pytest.raises(KeyError):
            EntityKind.from_tag("bug")


def test_prompt_owner_for_kind():
    assert PromptOwner.for_kind(EntityKind.TASK) is PromptOwner.TASK
    assert PromptOwner.STORY.id_field == "storyId"
