"""
Per-kind ID sequences.

Counters live in .project/sequence.json as {epics, stories, tasks, plans},
each holding the next number to hand out. State is an explicit object:
loaded once before the first allocation, mutated by an allocator, and
saved once after a successful commit. Dry runs and explain passes
allocate from a throwaway copy so the persisted counters never move.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dotproject.lib.canonical import canonical_json, read_text, write_atomic
from dotproject.lib.errors import ParseError
from dotproject.lib.types import EntityKind

logger = logging.getLogger(__name__)


class SequenceState(BaseModel):
    """Next available number per kind."""

    model_config = ConfigDict(extra="ignore")

    epics: int = Field(default=1, ge=1)
    stories: int = Field(default=1, ge=1)
    tasks: int = Field(default=1, ge=1)
    plans: int = Field(default=1, ge=1)

    def peek(self, kind: EntityKind) -> int:
        return getattr(self, kind.counter)


def load_sequence(path: Path) -> SequenceState:
    """Read persisted counters. Missing file or fields default to 1.

    Raises:
        ParseError: if the file is not JSON or holds invalid counters
    """
    if not path.exists():
        return SequenceState()

    try:
        data = json.loads(read_text(path))
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e.msg}", path, e.lineno) from None

    if not isinstance(data, dict):
        raise ParseError("sequence state must be a JSON object", path)

    try:
        return SequenceState.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"invalid sequence state: {e.errors()[0]['msg']}", path) from None


def save_sequence(path: Path, state: SequenceState) -> None:
    """Persist counters atomically in canonical form."""
    write_atomic(path, canonical_json(state.model_dump()))
    logger.info(f"Saved sequence state: {state.model_dump()}")


def format_id(kind: EntityKind, number: int, width: int = 4, separator: str = "-") -> str:
    """EP-0001 style identifier."""
    return f"{kind.prefix}{separator}{number:0{width}d}"


class SequenceAllocator:
    """Hands out IDs from a SequenceState it owns."""

    def __init__(self, state: SequenceState, width: int = 4, separator: str = "-"):
        self._state = state
        self.width = width
        self.separator = separator
        # Plans always use PLAN-NNNN regardless of the record separator
        self._plan_separator = "-"

    @property
    def state(self) -> SequenceState:
        return self._state

    def next(self, kind: EntityKind) -> str:
        """Return the current counter as an ID and advance it."""
        number = self._state.peek(kind)
        setattr(self._state, kind.counter, number + 1)
        separator = self._plan_separator if kind is EntityKind.PLAN else self.separator
        return format_id(kind, number, self.width, separator)

    def reserve(self, kind: EntityKind, record_id: str) -> None:
        """Advance the counter past an explicitly supplied ID of this kind."""
        number = kind.id_number(record_id)
        if number is None:
            return
        if number >= self._state.peek(kind):
            setattr(self._state, kind.counter, number + 1)
            logger.debug(f"Counter for {kind.counter} advanced past explicit {record_id}")


def simulate(state: SequenceState, width: int = 4, separator: str = "-") -> SequenceAllocator:
    """Allocator over a deep copy of state; the original is never mutated."""
    return SequenceAllocator(state.model_copy(deep=True), width, separator)
