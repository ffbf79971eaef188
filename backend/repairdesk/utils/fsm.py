"""Simple finite state machine utility for enforcing allowed status transitions.

Designed for lightweight lifecycle models (Ticket, PurchaseOrder, Invoice).
Usage:
    from repairdesk.utils.fsm import TransitionValidator
    PO_FSM = TransitionValidator('PurchaseOrder', {
        PurchaseOrderStatus.DRAFT: {PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.CANCELLED},
        PurchaseOrderStatus.ORDERED: {...},
        PurchaseOrderStatus.RECEIVED: set(),
    })
    PO_FSM.assert_can_transition(po.status, PurchaseOrderStatus.ORDERED)

Every state of the enum must appear as a key; a graph missing one is rejected at
construction so transition tables stay exhaustive.

Raises InvalidTransition if invalid.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Set, Type
from repairdesk.errors import InvalidTransition


class TransitionValidator:
    def __init__(self, entity: str, graph: Dict[Enum, Set[Enum]], states: Optional[Type[Enum]] = None):
        self.entity = entity
        self.graph: Dict[Enum, FrozenSet[Enum]] = {k: frozenset(v) for k, v in graph.items()}
        if states is None and graph:
            states = type(next(iter(graph)))
        if states is not None:
            missing = [s for s in states if s not in self.graph]
            if missing:
                raise ValueError(f"{entity} transition table missing states: {', '.join(m.value for m in missing)}")
        self.states = states

    def allowed_from(self, current: Enum) -> FrozenSet[Enum]:
        return self.graph.get(current, frozenset())

    def can_transition(self, current: Enum, target: Enum) -> bool:
        return target in self.allowed_from(current)

    def is_terminal(self, state: Enum) -> bool:
        return not self.allowed_from(state)

    def assert_can_transition(self, current: Enum, target: Enum):
        if not self.can_transition(current, target):
            reason = 'terminal state' if self.is_terminal(current) else None
            raise InvalidTransition(self.entity, current, target, reason=reason)
        return True

    def terminal_states(self) -> Iterable[Enum]:
        return [s for s, targets in self.graph.items() if not targets]

__all__ = ['TransitionValidator']
