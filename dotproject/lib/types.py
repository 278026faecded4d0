"""
Shared data types for dotproject.

Lives in lib/ so that config, storage and the PM pipeline can all import
it without circular imports.
"""

import re
from enum import Enum

# Persistent IDs carry at least this many digits
MIN_ID_DIGITS = 4


class EntityKind(Enum):
    """Closed set of addressable record kinds.

    Each member carries everything needed to dispatch on it: display
    prefix, batch section, storage directory, sequence counter and file
    suffix. Nothing derives these by pluralising a type name.
    """

    EPIC = ("epic", "EP", "epics", ".json")
    STORY = ("story", "ST", "stories", ".json")
    TASK = ("task", "TK", "tasks", ".json")
    PLAN = ("plan", "PLAN", "plans", ".yaml")

    def __init__(self, tag: str, prefix: str, plural: str, suffix: str):
        self.tag = tag
        self.prefix = prefix
        self.plural = plural
        self.suffix = suffix
        self.id_pattern = re.compile(rf"^{prefix}-?(\d{{{MIN_ID_DIGITS},}})$")

    @property
    def section(self) -> str:
        """Batch section holding records of this kind (e.g. 'stories')."""
        return self.plural

    @property
    def dirname(self) -> str:
        """Directory under .project/ holding files of this kind."""
        return self.plural

    @property
    def counter(self) -> str:
        """Field name in sequence.json."""
        return self.plural

    def looks_like_id(self, value) -> bool:
        """True if value is a persistent ID of this kind (with or without separator)."""
        return isinstance(value, str) and bool(self.id_pattern.match(value))

    def id_number(self, value: str) -> int | None:
        """Numeric part of a persistent ID of this kind, or None."""
        if not isinstance(value, str):
            return None
        m = self.id_pattern.match(value)
        return int(m.group(1)) if m else None

    @classmethod
    def from_tag(cls, tag: str) -> "EntityKind":
        for kind in cls:
            if kind.tag == tag:
                return kind
        raise KeyError(tag)


# Kinds that appear as record sections in a batch, in processing order.
# Later kinds may reference earlier ones by key.
RECORD_KINDS = (EntityKind.EPIC, EntityKind.STORY, EntityKind.TASK)


class PromptOwner(Enum):
    """Record kinds a prompt can be attached to."""

    STORY = ("STORY", "storyId", EntityKind.STORY)
    TASK = ("TASK", "taskId", EntityKind.TASK)

    def __init__(self, file_prefix: str, id_field: str, kind: EntityKind):
        self.file_prefix = file_prefix
        self.id_field = id_field
        self.kind = kind

    @classmethod
    def for_kind(cls, kind: EntityKind) -> "PromptOwner":
        for owner in cls:
            if owner.kind is kind:
                return owner
        raise KeyError(kind)
