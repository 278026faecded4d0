"""
Derived indexes over .project/.

  .project/index.json       - stories and epics summary
  .project/docs/index.json  - docs and ideas, from markdown front matter

Indexes are rebuilt from the files on disk every time, so they can be
deleted and regenerated freely.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotproject.lib import frontmatter
from dotproject.lib.canonical import canonical_json, format_timestamp, read_text, write_atomic
from dotproject.lib.config import ProjectPaths
from dotproject.lib.errors import ParseError
from dotproject.lib.types import EntityKind
from dotproject.pm.models import DEFAULT_STATUS
from dotproject.pm.resolver import utc_now

logger = logging.getLogger(__name__)

STORY_INDEX_NAME = "index.json"
DOCS_INDEX_NAME = "index.json"


@dataclass
class IndexResult:
    path: Path
    counts: dict[str, int]


def _load_records(directory: Path) -> list[dict]:
    """Load every JSON record under directory, skipping unreadable files."""
    if not directory.exists():
        return []
    records = []
    for path in sorted(directory.rglob("*.json")):
        try:
            data = json.loads(read_text(path))
        except (ParseError, json.JSONDecodeError) as e:
            logger.warning(f"Skipping unreadable record {path}: {e}")
            continue
        if isinstance(data, dict):
            records.append(data)
    return records


def build_story_index(paths: ProjectPaths, now: Optional[str] = None) -> IndexResult:
    """Rebuild .project/index.json from story and epic records."""
    stories = [
        {
            "id": s.get("id"),
            "title": s.get("title"),
            "epic": s.get("epic"),
            "risk": s.get("risk"),
            "status": s.get("status", DEFAULT_STATUS),
        }
        for s in _load_records(paths.kind_dir(EntityKind.STORY))
    ]
    epics = [
        {"id": e.get("id"), "title": e.get("title")}
        for e in _load_records(paths.kind_dir(EntityKind.EPIC))
    ]

    index = {"stories": stories, "epics": epics, "timestamp": now or utc_now()}
    index_path = paths.project_dir / STORY_INDEX_NAME
    write_atomic(index_path, canonical_json(index))

    logger.info(f"Indexed {len(stories)} stories and {len(epics)} epics into {index_path}")
    return IndexResult(index_path, {"stories": len(stories), "epics": len(epics)})


def _index_markdown(paths: ProjectPaths, directory: Path, kind: str) -> list[dict]:
    if not directory.exists():
        return []
    entries = []
    for path in sorted(directory.rglob("*.md")):
        try:
            meta, _ = frontmatter.parse(read_text(path), path)
        except ParseError as e:
            logger.warning(f"Skipping {path}: {e}")
            continue
        if not meta.get("id") or not meta.get("title"):
            continue
        created = meta.get("created")
        if created is not None and not isinstance(created, str):
            created = format_timestamp(created)
        entries.append({
            "id": meta["id"],
            "title": meta["title"],
            "tags": meta.get("tags") or [],
            "created": created,
            "kind": kind,
            "path": str(path.relative_to(paths.project_dir)),
        })
    return entries


def build_docs_index(paths: ProjectPaths, now: Optional[str] = None) -> IndexResult:
    """Rebuild .project/docs/index.json from docs and ideas front matter."""
    docs = _index_markdown(paths, paths.docs_dir, "doc")
    ideas = _index_markdown(paths, paths.ideas_dir, "idea")

    index = {"docs": docs + ideas, "timestamp": now or utc_now()}
    index_path = paths.docs_dir / DOCS_INDEX_NAME
    write_atomic(index_path, canonical_json(index))

    logger.info(f"Indexed {len(ideas)} ideas and {len(docs)} docs into {index_path}")
    return IndexResult(index_path, {"docs": len(docs), "ideas": len(ideas)})


def reindex(paths: ProjectPaths, now: Optional[str] = None) -> list[IndexResult]:
    """Rebuild both indexes: stories/epics first, then docs/ideas."""
    return [build_story_index(paths, now), build_docs_index(paths, now)]
