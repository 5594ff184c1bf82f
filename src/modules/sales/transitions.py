"""Transition policy for the commercial and logistics state machines."""

from __future__ import annotations

from typing import Mapping, Optional

from modules.sales.constants import (
    COMMERCIAL_TRANSITIONS,
    INITIAL_STATES,
    LOGISTICS_TRANSITIONS,
    StatusMachine,
)


class TransitionTable:
    """Static ``(machine, from) -> allowed next states`` look-up.

    Unknown machines or states raise ``ValueError`` instead of falling back
    to an empty or permissive default.
    """

    def __init__(
        self,
        tables: Optional[Mapping[str, Mapping[str, frozenset[str]]]] = None,
        initial_states: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._tables = tables or {
            StatusMachine.COMMERCIAL: COMMERCIAL_TRANSITIONS,
            StatusMachine.LOGISTICS: LOGISTICS_TRANSITIONS,
        }
        self._initial = initial_states or INITIAL_STATES

    def _table(self, machine: str) -> Mapping[str, frozenset[str]]:
        try:
            return self._tables[machine]
        except KeyError:
            raise ValueError(f"Unknown state machine {machine!r}.") from None

    def states(self, machine: str) -> frozenset[str]:
        return frozenset(self._table(machine))

    def initial_state(self, machine: str) -> str:
        self._table(machine)
        return self._initial[machine]

    def allowed_next(self, machine: str, from_state: str) -> frozenset[str]:
        table = self._table(machine)
        try:
            return table[from_state]
        except KeyError:
            raise ValueError(f"Unknown {machine} state {from_state!r}.") from None

    def is_allowed(self, machine: str, from_state: str, to_state: str) -> bool:
        return to_state in self.allowed_next(machine, from_state)

    def is_terminal(self, machine: str, state: str) -> bool:
        return not self.allowed_next(machine, state)


transition_table = TransitionTable()
