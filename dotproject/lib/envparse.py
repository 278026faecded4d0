"""
Reader for .project/project.env.

Only plain assignments are understood:

    # comment
    ID_WIDTH=4
    export UNRESOLVED_KEYS="error"

Values are taken literally. A value that would expand in a shell
(`$(...)`, `${...}` or backticks) is rejected so the file means the same
thing whether it is sourced or read here.
"""

import re
from pathlib import Path

from dotproject.lib.canonical import read_text
from dotproject.lib.errors import ParseError

ASSIGNMENT = re.compile(r'^(?:export\s+)?(?P<key>[^=\s]+)\s*=\s*(?P<value>.*)$')
KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')
SHELL_EXPANSION = re.compile(r'`|\$[({]')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_env(text: str, source: Path | str = "<string>") -> dict[str, str]:
    """
    Parse project.env text into a dict; later assignments win.

    Raises:
        ParseError: with the line number of the first bad assignment
    """
    settings = {}
    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        m = ASSIGNMENT.match(line)
        if m is None:
            raise ParseError("expected KEY=value", source, lineno)
        key = m.group("key")
        if not KEY_PATTERN.match(key):
            raise ParseError(f"invalid key '{key}'", source, lineno)

        value = _unquote(m.group("value").strip())
        if SHELL_EXPANSION.search(value):
            raise ParseError(f"shell expansion in value of {key}", source, lineno)
        settings[key] = value
    return settings


def load_env(filepath: Path) -> dict[str, str]:
    """Parse an env file. A missing file yields an empty dict."""
    path = Path(filepath)
    if not path.exists():
        return {}
    return parse_env(read_text(path), path)
