"""
Pre-flight conflict check for imports.

Every target path is inspected before the first write, so a refused
import writes nothing and reports every offending path at once.

Rules:
- Record files that already exist conflict unless upsert is allowed.
- Plan files never conflict-resolve: plans are immutable.
- Prompt files follow the same rule as record files.
- Two targets in one batch naming the same file always conflict.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from dotproject.lib.errors import ConflictError
from dotproject.lib.types import EntityKind, PromptOwner

logger = logging.getLogger(__name__)


@dataclass
class WriteTarget:
    """A file the importer intends to write."""
    kind: EntityKind | PromptOwner
    id: str  # owner ID for prompts
    path: Path

    @property
    def upsertable(self) -> bool:
        return self.kind is not EntityKind.PLAN


@dataclass
class ConflictReport:
    """Result of checking a set of write targets."""
    existing: list[Path] = field(default_factory=list)
    duplicates: list[Path] = field(default_factory=list)
    overwrites: list[Path] = field(default_factory=list)  # existing, but upsert allowed

    @property
    def paths(self) -> list[Path]:
        return self.existing + [p for p in self.duplicates if p not in self.existing]

    @property
    def ok(self) -> bool:
        return not self.existing and not self.duplicates


def check_writable(targets: list[WriteTarget], upsert: bool = False) -> ConflictReport:
    """Inspect all targets without raising.

    Args:
        targets: Files the import would write
        upsert: Whether existing record files may be overwritten

    Returns:
        ConflictReport covering every target
    """
    report = ConflictReport()
    seen: set[Path] = set()

    for target in targets:
        if target.path in seen:
            if target.path not in report.duplicates:
                report.duplicates.append(target.path)
            continue
        seen.add(target.path)

        if not target.path.exists():
            continue
        if upsert and target.upsertable:
            report.overwrites.append(target.path)
        else:
            report.existing.append(target.path)

    for path in report.paths:
        logger.debug(f"Conflict: {path}")
    return report


def ensure_writable(targets: list[WriteTarget], upsert: bool = False) -> ConflictReport:
    """Check all targets and raise if any conflict.

    Raises:
        ConflictError: listing every conflicting path
    """
    report = check_writable(targets, upsert)
    if not report.ok:
        raise ConflictError(report.paths, report.duplicates)
    return report
