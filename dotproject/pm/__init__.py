"""
PM (Project Management) pipeline for dotproject.

Bulk ingestion of epics, stories, tasks and prompts: ID allocation, key
resolution, conflict checks, canonical writes and reindexing.
"""

from dotproject.pm.models import Batch, ResolvedBatch, PromptTarget
from dotproject.pm.batch import parse_batch, batch_from_document
from dotproject.pm.sequence import (
    SequenceState,
    SequenceAllocator,
    load_sequence,
    save_sequence,
    simulate,
)
from dotproject.pm.resolver import resolve_batch
from dotproject.pm.conflicts import WriteTarget, ConflictReport, check_writable, ensure_writable
from dotproject.pm.importer import ImportPlan, ImportResult, explain_import, run_import
from dotproject.pm.indexer import build_story_index, build_docs_index, reindex

__all__ = [
    "Batch",
    "ResolvedBatch",
    "PromptTarget",
    "parse_batch",
    "batch_from_document",
    "SequenceState",
    "SequenceAllocator",
    "load_sequence",
    "save_sequence",
    "simulate",
    "resolve_batch",
    "WriteTarget",
    "ConflictReport",
    "check_writable",
    "ensure_writable",
    "ImportPlan",
    "ImportResult",
    "explain_import",
    "run_import",
    "build_story_index",
    "build_docs_index",
    "reindex",
]
