"""
Storefront Primitive — Workflow Definition
===========================================
A state machine schema: the states a record may hold and the moves
allowed between them. Definitions are immutable and shared; the
record itself lives in the database.

Callers check a move with is_valid_transition() before writing it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Fields:
        name:            Identifier for this workflow (e.g. "OrderFulfillment")
        initial_state:   Starting state for new records
        terminal_states: States from which no further transitions are allowed
        transitions:     Dict of {from_state → frozenset(allowed_to_states)}
    """
    name: str
    initial_state: str
    terminal_states: FrozenSet[str]
    transitions: Dict[str, FrozenSet[str]]

    def __post_init__(self):
        if not self.name:
            raise ValueError("Workflow name must be non-empty.")
        if self.initial_state not in self.transitions:
            raise ValueError(
                f"initial_state '{self.initial_state}' not in transitions."
            )
        for state in self.terminal_states:
            if self.transitions.get(state):
                raise ValueError(f"terminal state '{state}' has outgoing moves.")

    def is_valid_transition(self, from_state: str, to_state: str) -> bool:
        return to_state in self.transitions.get(from_state, frozenset())

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states
