"""
YAML front matter for markdown docs and ideas.

    ---
    id: IDEA-0001
    title: Offline mode
    tags: [sync]
    ---

    Body text.
"""

import yaml

from .errors import ParseError

DELIMITER = "---"


def parse(content: str, source="<string>") -> tuple[dict, str]:
    """
    Split a markdown document into (metadata, body).

    Documents without front matter yield ({}, content).

    Raises:
        ParseError: if the block is unterminated, not YAML, or not a mapping
    """
    if not content.startswith(DELIMITER):
        return {}, content

    parts = content.split(DELIMITER, 2)
    if len(parts) < 3:
        raise ParseError("malformed front matter: no closing delimiter", source)

    try:
        metadata = yaml.safe_load(parts[1])
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML in front matter: {e}", source) from None

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ParseError("front matter must be a mapping", source)

    return metadata, parts[2].lstrip("\n")
