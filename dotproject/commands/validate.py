"""
dotproject validate - Check records against the project's JSON Schemas.
"""

import sys

from dotproject.lib.config import ProjectConfig, ProjectPaths
from dotproject.lib.validate import validate_project


def cmd_validate(args, paths: ProjectPaths, config: ProjectConfig) -> int:
    """Validate stories (and epics/tasks that have a schema).

    Returns 1 if any record is invalid; every violation is listed.
    """
    reports = validate_project(paths)

    failed = False
    for report in reports.values():
        print(f"{report.valid} {report.kind.plural} valid")
        if report.ok:
            continue
        failed = True
        print(f"{report.invalid} invalid {report.kind.plural}:", file=sys.stderr)
        for path, reason in report.errors:
            print(f"  {path} ({reason})", file=sys.stderr)

    return 1 if failed else 0
