"""
Bulk import file parsing.

Two input formats are accepted:
  yaml   - one document with epics/stories/tasks/prompts sequences
           (JSON documents parse as YAML too)
  ndjson - one JSON object per line, tagged with a `type` field
           (epic, story, task, prompt), grouped into the same shape

Parsing either yields a Batch or raises before anything is resolved.
"""

import copy
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from dotproject.lib.canonical import format_timestamp, read_text
from dotproject.lib.errors import ParseError, PreconditionError
from dotproject.lib.types import EntityKind, PromptOwner, RECORD_KINDS
from dotproject.pm.models import Batch

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("yaml", "ndjson")
FORMAT_ALIASES = {"yml": "yaml", "json": "yaml", "jsonl": "ndjson"}

PROMPTS_SECTION = "prompts"
NDJSON_TYPES = {kind.tag: kind.section for kind in RECORD_KINDS}
NDJSON_TYPES["prompt"] = PROMPTS_SECTION


def _plain(value: Any) -> Any:
    """Replace YAML-native dates with ISO-8601 strings, recursively."""
    if isinstance(value, (datetime, date)):
        return format_timestamp(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _check_prompt(prompt: dict, source: Path | str, where: str) -> None:
    owners = [o for o in PromptOwner if prompt.get(o.id_field)]
    if len(owners) != 1:
        fields = " or ".join(o.id_field for o in PromptOwner)
        raise ParseError(f"{where}: prompt must name exactly one owner ({fields})", source)
    owner = owners[0]
    if not isinstance(prompt[owner.id_field], str):
        raise ParseError(f"{where}: {owner.id_field} must be a string", source)


def _check_record(record: dict, kind: EntityKind, source: Path | str, where: str) -> None:
    record_id = record.get("id")
    if record_id not in (None, "") and not kind.looks_like_id(record_id):
        raise ParseError(f"{where}: id {record_id!r} is not a valid {kind.tag} ID", source)
    key = record.get("key")
    if key is not None and (not isinstance(key, str) or not key):
        raise ParseError(f"{where}: key must be a non-empty string", source)


def batch_from_document(data: Any, source: Path | str = "<string>") -> Batch:
    """Build a Batch from a parsed document.

    Raises:
        ParseError: if the document does not have the expected shape
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError(f"batch must be a mapping, got {type(data).__name__}", source)

    sections = {}
    for name in [kind.section for kind in RECORD_KINDS] + [PROMPTS_SECTION]:
        entries = data.get(name)
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise ParseError(f"'{name}' must be a list, got {type(entries).__name__}", source)
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ParseError(f"{name}[{i}] must be a mapping, got {type(entry).__name__}", source)
        sections[name] = [_plain(copy.deepcopy(e)) for e in entries]

    for kind in RECORD_KINDS:
        for i, record in enumerate(sections[kind.section]):
            _check_record(record, kind, source, f"{kind.section}[{i}]")
    for i, prompt in enumerate(sections[PROMPTS_SECTION]):
        _check_prompt(prompt, source, f"prompts[{i}]")

    return Batch(
        epics=sections["epics"],
        stories=sections["stories"],
        tasks=sections["tasks"],
        prompts=sections[PROMPTS_SECTION],
        source=data,
    )


def parse_yaml(text: str, source: Path | str = "<string>") -> Batch:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line = mark.line + 1
        raise ParseError(f"invalid YAML: {getattr(e, 'problem', None) or e}", source, line) from None
    return batch_from_document(data, source)


def parse_ndjson(text: str, source: Path | str = "<string>") -> Batch:
    grouped: dict[str, list] = {section: [] for section in NDJSON_TYPES.values()}

    for lineno, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"invalid JSON: {e.msg}", source, lineno) from None
        if not isinstance(item, dict):
            raise ParseError(f"record must be an object, got {type(item).__name__}", source, lineno)

        tag = item.get("type")
        section = NDJSON_TYPES.get(tag)
        if section is None:
            known = ", ".join(NDJSON_TYPES)
            raise ParseError(f"unknown record type {tag!r} (expected one of: {known})", source, lineno)
        grouped[section].append(item)

    source_doc = copy.deepcopy(grouped)
    for items in grouped.values():
        for item in items:
            item.pop("type", None)

    batch = batch_from_document(grouped, source)
    batch.source = source_doc
    return batch


def normalize_format(fmt: str) -> str:
    fmt = fmt.lower()
    fmt = FORMAT_ALIASES.get(fmt, fmt)
    if fmt not in SUPPORTED_FORMATS:
        raise ParseError(f"unsupported format '{fmt}' (expected one of: {', '.join(SUPPORTED_FORMATS)})")
    return fmt


def parse_batch(path: Path, fmt: str = "yaml") -> Batch:
    """Read and parse a bulk import file.

    Raises:
        PreconditionError: if the file does not exist
        ParseError: if the format is unsupported or the content is malformed
    """
    fmt = normalize_format(fmt)
    path = Path(path)
    if not path.exists():
        raise PreconditionError(f"File not found: {path}")

    text = read_text(path)
    logger.info(f"Parsing {fmt} batch from {path}")
    if fmt == "ndjson":
        return parse_ndjson(text, path)
    return parse_yaml(text, path)
