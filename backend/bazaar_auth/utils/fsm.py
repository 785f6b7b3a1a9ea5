"""Small finite state machine helper for enforcing allowed transitions.

Usage:
    from bazaar_auth.utils.fsm import TransitionValidator
    FSM = TransitionValidator({
        'IDLE': {'AUTHENTICATING'},
        'AUTHENTICATING': {'READY', 'FAILED'},
        'READY': set(),
    }, field_name='resolution state')
    FSM.assert_can_transition(current, target)

Raises InvalidTransition if the edge is not in the graph.
"""
from __future__ import annotations
from typing import Dict, Iterable, Set

from bazaar_auth.errors import InvalidTransition


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    @property
    def states(self) -> Set[str]:
        out = set(self.graph)
        for targets in self.graph.values():
            out |= set(targets)
        return out

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise InvalidTransition(self.field_name, current, target)
        return True

    def with_reset_to(self, state: str, sources: Iterable[str] = None) -> 'TransitionValidator':
        """Copy of this validator where `state` is reachable from every (or each given) state."""
        graph = {k: set(v) for k, v in self.graph.items()}
        for src in (sources if sources is not None else self.states):
            graph.setdefault(src, set()).add(state)
        return TransitionValidator(graph, self.field_name)

__all__ = ['TransitionValidator']
