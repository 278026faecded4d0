"""
Bulk import orchestration.

Sequences parsing output through resolution, the conflict pre-flight and
the post-commit fan-out:

    1. plan envelope       .project/plans/PLAN-NNNN.yaml
    2. records             .project/{epics,stories,tasks}/<ID>.json
    3. prompt bodies       .project/prompts/<STORY|TASK>-<ID>.md
    4. sequence state      .project/sequence.json
    5. schema validation   stories (and epics/tasks with a schema)
    6. reindex             stories/epics, then docs/ideas

Explain and dry-run resolve against a simulated allocator and never write.
A commit that fails validation keeps its files: each write stands alone.
The .project/ directory is assumed to be owned by one invocation at a
time; concurrent imports can race on sequence.json.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotproject.lib.canonical import canonical_json, canonical_yaml, write_atomic
from dotproject.lib.config import ProjectConfig, ProjectPaths
from dotproject.lib.errors import ConflictError
from dotproject.lib.types import EntityKind, RECORD_KINDS
from dotproject.lib.validate import ValidationReport, load_project_schemas, validate_project
from dotproject.pm.conflicts import ConflictReport, WriteTarget, check_writable, ensure_writable
from dotproject.pm.indexer import IndexResult, reindex
from dotproject.pm.models import Batch, ResolvedBatch
from dotproject.pm.resolver import resolve_batch
from dotproject.pm.sequence import SequenceAllocator, load_sequence, save_sequence, simulate
from dotproject.workflow.fsm import ImportFSM

logger = logging.getLogger(__name__)


@dataclass
class ImportPlan:
    """What an import would do: IDs, key mappings and files."""
    plan_id: str
    counts: dict[str, int]
    key_mappings: list[tuple[str, str, str]]  # (kind tag, key, id)
    plan_path: Path
    record_paths: list[Path]
    prompt_paths: list[Path]
    unresolved: list[tuple[str, str, str]] = field(default_factory=list)  # (record id, field, value)

    @property
    def files(self) -> list[Path]:
        return [self.plan_path, *self.record_paths, *self.prompt_paths]


@dataclass
class ImportResult:
    """Outcome of run_import."""
    plan: ImportPlan
    state: str
    resolved: ResolvedBatch
    conflicts: ConflictReport
    written: list[Path] = field(default_factory=list)
    validation: dict[EntityKind, ValidationReport] = field(default_factory=dict)
    indexes: list[IndexResult] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.state == "committed"

    @property
    def valid(self) -> bool:
        return all(r.ok for r in self.validation.values())


def write_targets(paths: ProjectPaths, resolved: ResolvedBatch) -> list[WriteTarget]:
    """Plan, record and prompt files a resolved batch would write, in write order."""
    targets = [WriteTarget(EntityKind.PLAN, resolved.plan_id, paths.plan_path(resolved.plan_id))]
    for kind, record in resolved.all_records():
        record_id = str(record["id"])
        targets.append(WriteTarget(kind, record_id, paths.record_path(kind, record_id)))
    for prompt in resolved.prompts:
        targets.append(WriteTarget(prompt.owner, prompt.owner_id, paths.prompt_path(prompt.owner, prompt.owner_id)))
    return targets


def build_plan(paths: ProjectPaths, resolved: ResolvedBatch) -> ImportPlan:
    key_mappings = [
        (kind.tag, str(key), record_id)
        for kind in RECORD_KINDS
        for key, record_id in resolved.key_map.get(kind, {}).items()
    ]
    return ImportPlan(
        plan_id=resolved.plan_id,
        counts=resolved.counts(),
        key_mappings=key_mappings,
        plan_path=paths.plan_path(resolved.plan_id),
        record_paths=[t.path for t in write_targets(paths, resolved) if t.kind in RECORD_KINDS],
        prompt_paths=[paths.prompt_path(p.owner, p.owner_id) for p in resolved.prompts],
        unresolved=[(r.record_id, r.field, r.value) for r in resolved.unresolved],
    )


def _resolve(
    paths: ProjectPaths,
    batch: Batch,
    config: ProjectConfig,
    allocator: SequenceAllocator,
    fsm: ImportFSM,
    now: Optional[str],
) -> ResolvedBatch:
    resolved = resolve_batch(batch, allocator, now=now, unresolved=config.unresolved_keys)
    fsm.label = resolved.plan_id
    fsm.resolve()
    return resolved


def explain_import(
    paths: ProjectPaths,
    batch: Batch,
    config: Optional[ProjectConfig] = None,
    now: Optional[str] = None,
) -> ImportPlan:
    """Describe an import without writing anything or advancing sequences."""
    config = config or ProjectConfig()
    state = load_sequence(paths.sequence_path)
    allocator = simulate(state, config.id_width, config.id_separator)
    fsm = ImportFSM()
    resolved = _resolve(paths, batch, config, allocator, fsm, now)
    return build_plan(paths, resolved)


def _commit(paths: ProjectPaths, resolved: ResolvedBatch, allocator: SequenceAllocator) -> list[Path]:
    """Write plan, records, prompts and sequence state, in that order."""
    paths.ensure_dirs()
    written = []

    plan_path = paths.plan_path(resolved.plan_id)
    write_atomic(plan_path, canonical_yaml(resolved.source))
    written.append(plan_path)

    for kind, record in resolved.all_records():
        record_path = paths.record_path(kind, str(record["id"]))
        write_atomic(record_path, canonical_json(record))
        written.append(record_path)

    for prompt in resolved.prompts:
        prompt_path = paths.prompt_path(prompt.owner, prompt.owner_id)
        write_atomic(prompt_path, prompt.body)
        written.append(prompt_path)

    save_sequence(paths.sequence_path, allocator.state)
    written.append(paths.sequence_path)

    for path in written:
        logger.info(f"Wrote {paths.relative(path)}")
    return written


def run_import(
    paths: ProjectPaths,
    batch: Batch,
    config: Optional[ProjectConfig] = None,
    upsert: bool = False,
    dry_run: bool = False,
    run_reindex: bool = True,
    now: Optional[str] = None,
) -> ImportResult:
    """
    Import a parsed batch.

    Args:
        paths: Project locations
        batch: Parsed batch
        config: Project settings (ID format, unresolved-key policy)
        upsert: Allow overwriting existing record files
        dry_run: Resolve and check conflicts without writing
        run_reindex: Rebuild indexes after a commit
        now: Timestamp for created/updated defaults

    Returns:
        ImportResult; check .valid for post-commit schema failures

    Raises:
        PreconditionError: if the story schema is missing (before any write)
        UnresolvedReferenceError: under the "error" policy (before any write)
        ConflictError: if targets exist without upsert (before any write)
    """
    config = config or ProjectConfig()
    fsm = ImportFSM()
    state = load_sequence(paths.sequence_path)

    if dry_run:
        allocator = simulate(state, config.id_width, config.id_separator)
        resolved = _resolve(paths, batch, config, allocator, fsm, now)
        conflicts = check_writable(write_targets(paths, resolved), upsert)
        fsm.report()
        return ImportResult(build_plan(paths, resolved), fsm.state, resolved, conflicts)

    # A missing story schema fails here, before any write
    schemas = load_project_schemas(paths)

    allocator = SequenceAllocator(state, config.id_width, config.id_separator)
    resolved = _resolve(paths, batch, config, allocator, fsm, now)
    try:
        conflicts = ensure_writable(write_targets(paths, resolved), upsert)
    except ConflictError:
        fsm.abort()
        raise

    written = _commit(paths, resolved, allocator)
    fsm.commit()

    result = ImportResult(build_plan(paths, resolved), fsm.state, resolved, conflicts, written)
    result.validation = validate_project(paths, schemas)
    if not result.valid:
        logger.warning(f"{resolved.plan_id} committed with schema violations; files were kept")

    if run_reindex:
        result.indexes = reindex(paths, now)

    return result
