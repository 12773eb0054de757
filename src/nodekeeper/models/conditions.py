# src/nodekeeper/models/conditions.py

from datetime import datetime, timezone
from typing import Callable, List, Optional

from .labels import CONDITION_FALSE, CONDITION_TRUE, CONDITION_UNKNOWN
from .metadata import Condition

Guard = Callable[[str, str], None]


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class ConditionSet:
    """
    Reads and writes the status conditions of an object in place.

    The transition time only moves when the status changes; rewriting the same
    status with the same reason and message is a no-op, which keeps converged
    objects free of writes.
    """

    def __init__(self, conditions: List[Condition], guard: Optional[Guard] = None):
        self._conditions = conditions
        self._guard = guard

    def get(self, condition_type: str) -> Optional[Condition]:
        for condition in self._conditions:
            if condition.type == condition_type:
                return condition
        return None

    def is_true(self, condition_type: str) -> bool:
        condition = self.get(condition_type)
        return condition is not None and condition.status == CONDITION_TRUE

    def set(
        self,
        condition_type: str,
        status: str,
        reason: Optional[str] = None,
        message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Sets a condition. Returns True if anything changed.

        Raises:
            IllegalTransitionError: If the guard rejects the new status.
        """
        existing = self.get(condition_type)
        if existing is not None and existing.status == status:
            if existing.reason == reason and existing.message == message:
                return False
            existing.reason = reason
            existing.message = message
            return True

        if self._guard is not None:
            self._guard(condition_type, status)

        condition = Condition(
            type=condition_type,
            status=status,
            reason=reason,
            message=message,
            last_transition_time=(now or _now()).replace(microsecond=0),
        )
        if existing is None:
            self._conditions.append(condition)
        else:
            self._conditions[self._conditions.index(existing)] = condition
        return True

    def set_true(self, condition_type: str, reason: Optional[str] = None, message: Optional[str] = None, now=None):
        # Kubernetes conventions require a reason; default it to the type
        return self.set(condition_type, CONDITION_TRUE, reason or condition_type, message or "", now=now)

    def set_false(self, condition_type: str, reason: str, message: str, now=None):
        return self.set(condition_type, CONDITION_FALSE, reason, message, now=now)

    def set_unknown(self, condition_type: str, reason: str = "AwaitingReconciliation", message: str = "", now=None):
        return self.set(condition_type, CONDITION_UNKNOWN, reason, message, now=now)

    def clear(self, condition_type: str) -> bool:
        existing = self.get(condition_type)
        if existing is None:
            return False
        self._conditions.remove(existing)
        return True
