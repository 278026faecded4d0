"""
Error taxonomy for dotproject.

Precondition and parse errors stop a command before anything is mutated.
Conflict errors are raised before the first write and name every offending
path. Schema violations are reported after a commit and never undo writes.
"""

from pathlib import Path


class DotProjectError(Exception):
    """Base class for errors surfaced to the CLI."""

    exit_code = 1


class PreconditionError(DotProjectError):
    """Missing project root, input file, schema or bad configuration."""

    exit_code = 2


class ParseError(DotProjectError):
    """Input or on-disk content is not valid structured data."""

    def __init__(self, message: str, path: Path | str | None = None, line: int | None = None):
        self.reason = message
        self.path = path
        self.line = line
        location = ""
        if path is not None:
            location = f"{path}"
            if line is not None:
                location += f":{line}"
            location += ": "
        super().__init__(f"{location}{message}")


class ConflictError(DotProjectError):
    """Target files already exist and upsert was not allowed."""

    def __init__(self, paths: list[Path], duplicates: list[Path] | None = None):
        self.paths = list(paths)
        self.duplicates = list(duplicates or [])  # targeted twice by one batch
        listing = "\n".join(f"  {p}" for p in self.paths)
        super().__init__(f"{len(self.paths)} conflicting target(s):\n{listing}")


class UnresolvedReferenceError(DotProjectError):
    """Local keys referenced in a batch that no record declares."""

    def __init__(self, references: list[tuple[str, str, str]]):
        # (record id, field, value)
        self.references = list(references)
        listing = "\n".join(f"  {rid}.{field} -> {value!r}" for rid, field, value in self.references)
        super().__init__(f"{len(self.references)} unresolved reference(s):\n{listing}")

