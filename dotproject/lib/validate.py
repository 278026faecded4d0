"""
Schema validation for dotproject records.

Validates records under .project/<kind>/ against the JSON Schemas the
project keeps in schemas/<kind>.json. Every violation is collected in one
pass; format keywords such as date-time are enforced, not just annotated.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.validators import validator_for

from .canonical import read_text
from .config import ProjectPaths
from .errors import ParseError, PreconditionError
from .types import EntityKind, RECORD_KINDS

logger = logging.getLogger(__name__)

# Story schema is mandatory; other kinds are checked when a schema exists.
REQUIRED_SCHEMAS = (EntityKind.STORY,)


@dataclass
class ValidationReport:
    """Aggregate result of validating all records of one kind."""
    kind: EntityKind
    valid: int = 0
    invalid: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)  # (relative path, reason)

    @property
    def ok(self) -> bool:
        return self.invalid == 0


def load_schema(schema_path: Path) -> dict:
    """Load and check a JSON Schema.

    Raises:
        PreconditionError: if the file is missing or the schema itself is invalid
        ParseError: if the file is not JSON
    """
    if not schema_path.exists():
        raise PreconditionError(f"Schema not found: {schema_path}")

    try:
        schema = json.loads(read_text(schema_path))
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON in schema: {e.msg}", schema_path, e.lineno) from None

    cls = validator_for(schema, default=jsonschema.Draft202012Validator)
    try:
        cls.check_schema(schema)
    except jsonschema.SchemaError as e:
        raise PreconditionError(f"Invalid schema {schema_path}: {e.message}") from None
    return schema


def _build_validator(schema: dict):
    cls = validator_for(schema, default=jsonschema.Draft202012Validator)
    return cls(schema, format_checker=cls.FORMAT_CHECKER)


def _format_error(error: jsonschema.ValidationError) -> str:
    path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "(root)"
    if error.validator == "format":
        return f"{path}: must match format \"{error.validator_value}\" ({error.message})"
    return f"{path}: {error.message}"


def validate(record: Any, schema: dict) -> tuple[bool, list[str]]:
    """
    Validate a record against a schema, collecting every violation.

    Args:
        record: Parsed record
        schema: Loaded JSON Schema

    Returns:
        (ok, violations) with violations sorted by location for stable output
    """
    validator = _build_validator(schema)
    errors = sorted(validator.iter_errors(record), key=lambda e: (list(map(str, e.absolute_path)), e.message))
    violations = [_format_error(e) for e in errors]
    return (not violations, violations)


def validate_kind(paths: ProjectPaths, kind: EntityKind, schema: dict) -> ValidationReport:
    """Validate every record file of one kind under .project/<kind>/."""
    report = ValidationReport(kind=kind)
    kind_dir = paths.kind_dir(kind)
    if not kind_dir.exists():
        return report

    validator = _build_validator(schema)
    for path in sorted(kind_dir.rglob("*.json")):
        rel = str(path.relative_to(paths.project_dir))
        try:
            data = json.loads(read_text(path))
        except ParseError as e:
            report.invalid += 1
            report.errors.append((rel, e.reason))
            continue
        except json.JSONDecodeError as e:
            report.invalid += 1
            report.errors.append((rel, f"invalid JSON: {e.msg}"))
            continue

        errors = sorted(validator.iter_errors(data), key=lambda e: (list(map(str, e.absolute_path)), e.message))
        if errors:
            report.invalid += 1
            report.errors.append((rel, "; ".join(_format_error(e) for e in errors)))
        else:
            report.valid += 1

    if report.invalid:
        logger.warning(f"{report.invalid} invalid {kind.tag} record(s) under {kind_dir}")
    return report


def load_project_schemas(paths: ProjectPaths) -> dict[EntityKind, dict]:
    """Load the schemas available for record kinds.

    Raises:
        PreconditionError: if a required schema is missing or invalid
    """
    schemas = {}
    for kind in RECORD_KINDS:
        schema_path = paths.schema_path(kind)
        if kind in REQUIRED_SCHEMAS or schema_path.exists():
            schemas[kind] = load_schema(schema_path)
    return schemas


def validate_project(paths: ProjectPaths, schemas: dict[EntityKind, dict] | None = None) -> dict[EntityKind, ValidationReport]:
    """Validate all record kinds that have a schema."""
    if schemas is None:
        schemas = load_project_schemas(paths)
    return {kind: validate_kind(paths, kind, schema) for kind, schema in schemas.items()}
