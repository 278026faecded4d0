"""
Canonical encoding for records and plan envelopes.

Every mapping has its keys sorted at every depth; sequence order is kept
because it carries meaning. Output always ends with a single newline.
Encoding already-canonical content reproduces it byte for byte, so
canonicalize can be re-run over .project/ without producing diffs.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import yaml

from .errors import ParseError

logger = logging.getLogger(__name__)

# Top-level directories under .project/ that canonicalize leaves alone
DEFAULT_EXCLUDES = ("atlas",)


def sort_keys(value: Any) -> Any:
    """Return a copy of value with mapping keys sorted recursively."""
    if isinstance(value, dict):
        return {k: sort_keys(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [sort_keys(v) for v in value]
    return value


def format_timestamp(value: datetime | date) -> str:
    """ISO-8601 text for a date or datetime; UTC datetimes use the Z suffix."""
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() == timedelta(0):
            return value.replace(tzinfo=None).isoformat() + "Z"
        return value.isoformat()
    return value.isoformat()


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return format_timestamp(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonical_json(value: Any) -> str:
    """Deterministic JSON text: sorted keys, 2-space indent, trailing newline."""
    return json.dumps(sort_keys(value), indent=2, ensure_ascii=False, default=_json_default) + "\n"


def canonical_yaml(value: Any) -> str:
    """Deterministic YAML text in block style with sorted keys."""
    return yaml.safe_dump(
        sort_keys(value),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def canonicalize_text(text: str, source: Path | str = "<string>") -> str:
    """Parse JSON text and return its canonical encoding.

    Raises:
        ParseError: if text is not valid JSON
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e.msg}", source, e.lineno) from None
    return canonical_json(data)


def read_text(path: Path) -> str:
    """Read a UTF-8 text file.

    Raises:
        ParseError: if the bytes are not valid UTF-8
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"not valid UTF-8 ({e.reason} at byte {e.start})", path) from None


def write_atomic(path: Path, text: str) -> None:
    """Write text to path via a temp file in the same directory and os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def canonicalize_file(path: Path) -> bool:
    """Rewrite a JSON file in canonical form.

    Returns:
        True if the file content changed

    Raises:
        ParseError: if the file is not valid JSON
    """
    original = read_text(path)
    canonical = canonicalize_text(original, path)
    if canonical == original:
        return False
    write_atomic(path, canonical)
    return True


@dataclass
class CanonicalizeResult:
    """Outcome of canonicalizing a directory tree."""
    scanned: int = 0
    rewritten: list[Path] = field(default_factory=list)


def iter_json_files(project_dir: Path, exclude: tuple[str, ...] = DEFAULT_EXCLUDES) -> list[Path]:
    """All *.json files under project_dir except excluded top-level directories, sorted."""
    if not project_dir.exists():
        return []
    files = []
    for path in sorted(project_dir.rglob("*.json")):
        rel = path.relative_to(project_dir)
        if rel.parts and rel.parts[0] in exclude:
            continue
        if path.is_file():
            files.append(path)
    return files


def canonicalize_tree(project_dir: Path, exclude: tuple[str, ...] = DEFAULT_EXCLUDES) -> CanonicalizeResult:
    """Canonicalize every JSON file under project_dir.

    Every file is parsed before any is rewritten, so malformed content
    aborts the run without touching the tree.

    Raises:
        ParseError: naming the first file that is not valid JSON
    """
    result = CanonicalizeResult()
    pending: list[tuple[Path, str]] = []

    for path in iter_json_files(project_dir, exclude):
        original = read_text(path)
        canonical = canonicalize_text(original, path)
        result.scanned += 1
        if canonical != original:
            pending.append((path, canonical))

    for path, canonical in pending:
        write_atomic(path, canonical)
        result.rewritten.append(path)
        logger.info(f"Canonicalized {path}")

    return result
