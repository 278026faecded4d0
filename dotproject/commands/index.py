"""
dotproject story index / docs index - Rebuild derived indexes.
"""

from dotproject.lib.config import ProjectConfig, ProjectPaths
from dotproject.pm.indexer import build_docs_index, build_story_index


def cmd_story_index(args, paths: ProjectPaths, config: ProjectConfig) -> int:
    result = build_story_index(paths)
    print(f"Indexed {result.counts['stories']} stories and {result.counts['epics']} epics.")
    return 0


def cmd_docs_index(args, paths: ProjectPaths, config: ProjectConfig) -> int:
    result = build_docs_index(paths)
    print(f"Indexed {result.counts['ideas']} ideas and {result.counts['docs']} docs.")
    return 0
