"""
Data models for the PM import pipeline.

Records stay plain dicts so fields this tool does not know about survive
a round trip untouched; the types here describe the batch around them.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from dotproject.lib.types import EntityKind, PromptOwner, RECORD_KINDS

DEFAULT_STATUS = "draft"


@dataclass
class Batch:
    """A parsed bulk-import file, grouped by record kind.

    `source` is the parsed document exactly as read; it becomes the
    plan envelope.
    """
    epics: list[dict] = field(default_factory=list)
    stories: list[dict] = field(default_factory=list)
    tasks: list[dict] = field(default_factory=list)
    prompts: list[dict] = field(default_factory=list)
    source: dict = field(default_factory=dict)

    def records(self, kind: EntityKind) -> list[dict]:
        return getattr(self, kind.section)


@dataclass
class PromptTarget:
    """A prompt body bound to its owning story or task."""
    owner: PromptOwner
    owner_id: str
    body: str


@dataclass
class UnresolvedReference:
    """A cross-reference whose value matched no key in the batch."""
    record_id: str
    field: str
    value: str


@dataclass
class ResolvedBatch:
    """Batch with persistent IDs assigned and references resolved."""
    plan_id: str
    epics: list[dict] = field(default_factory=list)
    stories: list[dict] = field(default_factory=list)
    tasks: list[dict] = field(default_factory=list)
    prompts: list[PromptTarget] = field(default_factory=list)
    key_map: dict[EntityKind, dict[str, str]] = field(default_factory=dict)
    unresolved: list[UnresolvedReference] = field(default_factory=list)
    source: dict = field(default_factory=dict)

    def records(self, kind: EntityKind) -> list[dict]:
        return getattr(self, kind.section)

    def all_records(self) -> list[tuple[EntityKind, dict]]:
        """(kind, record) pairs in processing order."""
        return [(kind, record) for kind in RECORD_KINDS for record in self.records(kind)]

    def counts(self) -> dict[str, int]:
        counts = {kind.section: len(self.records(kind)) for kind in RECORD_KINDS}
        counts["prompts"] = len(self.prompts)
        return counts

    def lookup_key(self, kind: EntityKind, key: Any) -> Optional[str]:
        return self.key_map.get(kind, {}).get(key)
