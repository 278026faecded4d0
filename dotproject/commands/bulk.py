"""
dotproject bulk - Bulk import and explain.

Imports epics, stories, tasks and prompts from a YAML document or NDJSON
stream in one go, or explains what such an import would do.
"""

import sys
from dataclasses import replace
from pathlib import Path

from dotproject.lib.config import ProjectConfig, ProjectPaths
from dotproject.lib.errors import ConflictError
from dotproject.pm.batch import parse_batch
from dotproject.pm.importer import ImportPlan, explain_import, run_import


def _print_counts(plan: ImportPlan, verb: str = "") -> None:
    label = f" {verb}" if verb else ""
    print(f"Epics{label}: {plan.counts['epics']}")
    print(f"Stories{label}: {plan.counts['stories']}")
    print(f"Tasks{label}: {plan.counts['tasks']}")
    print(f"Prompts{label}: {plan.counts['prompts']}")


def _print_mappings(plan: ImportPlan) -> None:
    print("Key to ID mappings:")
    if not plan.key_mappings:
        print("  (none)")
    for tag, key, record_id in plan.key_mappings:
        print(f"  {tag}.{key} -> {record_id}")

    if plan.unresolved:
        print("Unresolved references (kept as literal values):")
        for record_id, field, value in plan.unresolved:
            print(f"  {record_id}.{field} -> {value!r}")


def _conflict_reason(path: Path, duplicates: list[Path]) -> str:
    if path in duplicates:
        return "is written twice by this batch"
    return "already exists"


def _print_files(plan: ImportPlan, paths: ProjectPaths) -> None:
    print("Files to write:")
    for path in plan.files:
        print(f"  {paths.relative(path)}")


def cmd_bulk_explain(args, paths: ProjectPaths, config: ProjectConfig) -> int:
    """Explain what a bulk import would do without executing it."""
    batch = parse_batch(Path(args.file), args.format)
    plan = explain_import(paths, batch, config)

    print("Explanation:")
    print(f"Plan ID: {plan.plan_id}")
    _print_counts(plan, "to create")
    _print_mappings(plan)
    _print_files(plan, paths)
    return 0


def cmd_bulk_import(args, paths: ProjectPaths, config: ProjectConfig) -> int:
    """Import a bulk file, or report what would happen with --dry-run."""
    if getattr(args, "strict_keys", False):
        config = replace(config, unresolved_keys="error")

    print("Parsing bulk import file...")
    batch = parse_batch(Path(args.file), args.format)

    try:
        result = run_import(
            paths,
            batch,
            config,
            upsert=args.upsert,
            dry_run=args.dry_run,
            run_reindex=not getattr(args, "no_reindex", False),
        )
    except ConflictError as e:
        print("ERROR: Import aborted, nothing was written.", file=sys.stderr)
        for path in e.paths:
            print(f"  Conflict: {paths.relative(path)} {_conflict_reason(path, e.duplicates)}", file=sys.stderr)
        print("Use --upsert to overwrite existing records.", file=sys.stderr)
        return 1

    plan = result.plan

    if args.dry_run:
        print("Dry run mode:")
        print(f"Plan: {plan.plan_id}")
        _print_counts(plan)
        _print_mappings(plan)
        _print_files(plan, paths)
        if result.conflicts.existing or result.conflicts.duplicates:
            print("Conflicts:")
            for path in result.conflicts.paths:
                print(f"  {paths.relative(path)} {_conflict_reason(path, result.conflicts.duplicates)}")
        if result.conflicts.overwrites:
            print("Would overwrite:")
            for path in result.conflicts.overwrites:
                print(f"  {paths.relative(path)}")
        return 0 if result.conflicts.ok else 1

    print("Bulk import completed")
    print(f"Plan: {plan.plan_id}")
    _print_counts(plan)

    for report in result.validation.values():
        print(f"{report.valid} {report.kind.plural} valid")
        if not report.ok:
            print(f"{report.invalid} invalid {report.kind.plural}:", file=sys.stderr)
            for path, reason in report.errors:
                print(f"  {path} ({reason})", file=sys.stderr)

    for index in result.indexes:
        counts = ", ".join(f"{n} {name}" for name, n in index.counts.items())
        print(f"Indexed {counts}")

    return 0 if result.valid else 1
