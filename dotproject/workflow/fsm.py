"""Import run state machine using transitions library.

An import moves through:

    parsed -> resolved -> dry_run_reported
                       -> conflict_aborted
                       -> committed

Explain passes stop at resolved. Only explicit triggers exist; calling a
trigger from the wrong state raises transitions.MachineError.

Usage:
    from dotproject.workflow.fsm import ImportFSM

    fsm = ImportFSM("PLAN-0003")
    fsm.resolve()
    fsm.commit()
"""

import logging
from typing import Callable

from transitions import Machine

logger = logging.getLogger(__name__)


STATES = [
    "parsed",
    "resolved",
    "dry_run_reported",
    "conflict_aborted",
    "committed",
]

TERMINAL_STATES = {"dry_run_reported", "conflict_aborted", "committed"}

# Transitions defined as (trigger, source, dest)
# Each trigger becomes a method on the FSM
TRANSITIONS = [
    {"trigger": "resolve", "source": "parsed", "dest": "resolved"},
    {"trigger": "report", "source": "resolved", "dest": "dry_run_reported"},
    {"trigger": "abort", "source": "resolved", "dest": "conflict_aborted"},
    {"trigger": "commit", "source": "resolved", "dest": "committed"},
]


class ImportFSM:
    """State machine for one import run.

    Wraps the transitions library with import-specific logging and an
    optional callback so callers can record the path a run took.
    """

    def __init__(self, label: str = "import", on_transition: Callable[[str, str, str], None] | None = None):
        """Initialize FSM in the parsed state.

        Args:
            label: Name used in log lines (plan ID once known)
            on_transition: Optional callback(from_state, to_state, trigger) called after transitions
        """
        self.label = label
        self.on_transition = on_transition
        self.history: list[str] = ["parsed"]

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="parsed",
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Callback after any state transition."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[FSM] {self.label}: {from_state} -> {to_state} ({trigger})")
        self.history.append(to_state)

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)
