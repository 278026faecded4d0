"""
dotproject canonicalize - Rewrite JSON under .project/ in canonical form.
"""

from dotproject.lib.canonical import canonicalize_tree
from dotproject.lib.config import ProjectConfig, ProjectPaths


def cmd_canonicalize(args, paths: ProjectPaths, config: ProjectConfig) -> int:
    result = canonicalize_tree(paths.project_dir)
    print(f"Canonicalized {result.scanned} files ({len(result.rewritten)} changed).")
    return 0
