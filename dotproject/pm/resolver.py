"""
Batch resolution: persistent IDs, key references and lifecycle stamps.

Records in a bulk import may point at each other through transient local
keys (a story's `epic: auth` naming an epic declared with `key: auth`).
Resolution runs in two passes over the kinds in fixed order (epics,
stories, tasks):

  1. Allocate IDs for records without one and register key -> ID.
  2. Rewrite reference fields that hold a known key to the mapped ID.

Records that already carry an ID keep it. Defaults are only filled in
where a field is absent. Nothing here touches the filesystem.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from dotproject.lib.canonical import format_timestamp
from dotproject.lib.errors import ParseError, UnresolvedReferenceError
from dotproject.lib.types import EntityKind, PromptOwner, RECORD_KINDS
from dotproject.pm.models import (
    DEFAULT_STATUS,
    Batch,
    PromptTarget,
    ResolvedBatch,
    UnresolvedReference,
)
from dotproject.pm.prompts import prompt_body, render_prompt
from dotproject.pm.sequence import SequenceAllocator

logger = logging.getLogger(__name__)

# Fields holding a reference to another record, per referring kind
REFERENCE_FIELDS: dict[EntityKind, dict[str, EntityKind]] = {
    EntityKind.STORY: {"epic": EntityKind.EPIC},
    EntityKind.TASK: {"story": EntityKind.STORY, "epic": EntityKind.EPIC},
}

INLINE_PROMPT_FIELD = "prompt"


def utc_now() -> str:
    """Current UTC time as RFC 3339 text (second precision, Z suffix)."""
    return format_timestamp(datetime.now(timezone.utc).replace(microsecond=0))


def _stamp(record: dict, kind: EntityKind, plan_id: str, now: str) -> None:
    record["planId"] = plan_id
    if not record.get("status"):
        record["status"] = DEFAULT_STATUS
    if not record.get("created"):
        record["created"] = now
    if not record.get("updated"):
        record["updated"] = now
    if kind is EntityKind.STORY and not record.get("uuid"):
        record["uuid"] = str(uuid.uuid4())


def _resolve_value(
    resolved: ResolvedBatch,
    target: EntityKind,
    value,
) -> tuple[object, bool]:
    """Map a key to an ID of target kind. Returns (value, resolved_ok)."""
    if not isinstance(value, str) or target.looks_like_id(value):
        return value, True
    mapped = resolved.lookup_key(target, value)
    if mapped is None:
        return value, False
    return mapped, True


def resolve_batch(
    batch: Batch,
    allocator: SequenceAllocator,
    plan_id: Optional[str] = None,
    now: Optional[str] = None,
    unresolved: str = "keep",
) -> ResolvedBatch:
    """
    Assign IDs, resolve local keys and stamp lifecycle metadata.

    Args:
        batch: Parsed batch (not modified)
        allocator: Allocator to draw IDs from; a simulated one for dry runs
        plan_id: Plan ID to stamp; allocated from the PLAN sequence if omitted
        now: Timestamp for created/updated defaults (defaults to current UTC)
        unresolved: "keep" leaves unknown keys as literal strings,
                    "error" raises once every reference has been checked

    Returns:
        ResolvedBatch with records in input order

    Raises:
        UnresolvedReferenceError: if unresolved == "error" and a key is unknown
        ParseError: if a prompt owner is neither an ID nor a key in the batch
    """
    if plan_id is None:
        plan_id = allocator.next(EntityKind.PLAN)
    if now is None:
        now = utc_now()

    resolved = ResolvedBatch(
        plan_id=plan_id,
        epics=copy.deepcopy(batch.epics),
        stories=copy.deepcopy(batch.stories),
        tasks=copy.deepcopy(batch.tasks),
        key_map={kind: {} for kind in RECORD_KINDS},
        source=batch.source,
    )

    # Explicit IDs anywhere in the batch must never be reissued
    for kind, record in resolved.all_records():
        if record.get("id"):
            allocator.reserve(kind, str(record["id"]))

    # Pass 1: IDs, key map, stamps
    for kind in RECORD_KINDS:
        keys = resolved.key_map[kind]
        for record in resolved.records(kind):
            if not record.get("id"):
                record["id"] = allocator.next(kind)
            key = record.get("key")
            if key is not None:
                if key in keys and keys[key] != record["id"]:
                    logger.warning(
                        f"Duplicate {kind.tag} key '{key}': {keys[key]} replaced by {record['id']}"
                    )
                keys[key] = record["id"]
            _stamp(record, kind, plan_id, now)

    # Pass 2: reference fields
    for kind, fields in REFERENCE_FIELDS.items():
        for record in resolved.records(kind):
            for field, target in fields.items():
                if field not in record:
                    continue
                value, ok = _resolve_value(resolved, target, record[field])
                if ok:
                    record[field] = value
                else:
                    resolved.unresolved.append(UnresolvedReference(record["id"], field, value))

    # Prompts: explicit entries by owner ID, inline fields by the record's own ID
    for i, entry in enumerate(batch.prompts):
        owner = next(o for o in PromptOwner if entry.get(o.id_field))
        owner_id, ok = _resolve_value(resolved, owner.kind, entry[owner.id_field])
        if not ok:
            raise ParseError(
                f"prompts[{i}]: {owner.id_field} {owner_id!r} is neither a {owner.kind.tag} ID nor a key in this batch"
            )
        resolved.prompts.append(PromptTarget(owner, str(owner_id), prompt_body(entry)))

    for kind in (EntityKind.STORY, EntityKind.TASK):
        owner = PromptOwner.for_kind(kind)
        for record in resolved.records(kind):
            if record.get(INLINE_PROMPT_FIELD):
                resolved.prompts.append(
                    PromptTarget(owner, record["id"], render_prompt(record[INLINE_PROMPT_FIELD]))
                )

    for ref in resolved.unresolved:
        logger.warning(f"Unresolved reference {ref.record_id}.{ref.field} -> '{ref.value}'")

    if resolved.unresolved and unresolved == "error":
        raise UnresolvedReferenceError([(r.record_id, r.field, r.value) for r in resolved.unresolved])

    return resolved
