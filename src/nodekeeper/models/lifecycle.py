# src/nodekeeper/models/lifecycle.py
"""
NodeClaim lifecycle as a single tagged phase.

The phase is derived from the persisted conditions and the deletion
timestamp; ``TRANSITIONS`` lists the moves a controller may make.
"""

from enum import Enum
from typing import Dict, FrozenSet

from nodekeeper.core.exceptions import IllegalTransitionError


class Phase(str, Enum):
    CREATED = "Created"
    LAUNCHED = "Launched"
    REGISTERED = "Registered"
    DRIFTED = "Drifted"
    TERMINATING = "Terminating"


TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.CREATED: frozenset({Phase.LAUNCHED, Phase.TERMINATING}),
    Phase.LAUNCHED: frozenset({Phase.REGISTERED, Phase.DRIFTED, Phase.TERMINATING}),
    Phase.REGISTERED: frozenset({Phase.DRIFTED, Phase.TERMINATING}),
    Phase.DRIFTED: frozenset({Phase.TERMINATING}),
    Phase.TERMINATING: frozenset(),
}


def can_transition(current: Phase, target: Phase) -> bool:
    return current == target or target in TRANSITIONS[current]


def check_transition(current: Phase, target: Phase):
    if not can_transition(current, target):
        raise IllegalTransitionError(f"nodeclaim cannot move from {current.value} to {target.value}")
