# tests/models/test_conditions.py

from datetime import datetime, timedelta, timezone

import pytest

from nodekeeper.core.exceptions import IllegalTransitionError
from nodekeeper.models.conditions import ConditionSet
from nodekeeper.models.labels import (
    CONDITION_DRIFTED,
    CONDITION_LAUNCHED,
    CONDITION_REGISTERED,
    CONDITION_TRUE,
    CONDITION_UNKNOWN,
)
from nodekeeper.models.lifecycle import TRANSITIONS, Phase, can_transition, check_transition
from nodekeeper.models.metadata import ObjectMeta
from nodekeeper.models.nodeclaim import NodeClaim

T0 = datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


@pytest.fixture
def nodeclaim():
    return NodeClaim(metadata=ObjectMeta(name="nodeclaim-1"))


class TestConditionSet:
    def test_set_records_transition_time_without_microseconds(self):
        conditions = ConditionSet([])
        assert conditions.set_true(CONDITION_LAUNCHED, now=T0)

        condition = conditions.get(CONDITION_LAUNCHED)
        assert condition.status == CONDITION_TRUE
        assert condition.reason == CONDITION_LAUNCHED
        assert condition.last_transition_time == T0.replace(microsecond=0)

    def test_same_status_keeps_transition_time(self):
        conditions = ConditionSet([])
        conditions.set_false(CONDITION_REGISTERED, "NotLaunched", "Node not launched", now=T0)

        changed = conditions.set_false(
            CONDITION_REGISTERED, "NodeNotFound", "Node not registered", now=T0 + timedelta(minutes=1)
        )

        condition = conditions.get(CONDITION_REGISTERED)
        assert changed
        assert condition.reason == "NodeNotFound"
        assert condition.last_transition_time == T0.replace(microsecond=0)

    def test_identical_set_is_a_no_op(self):
        conditions = ConditionSet([])
        conditions.set_unknown(CONDITION_DRIFTED, now=T0)

        assert not conditions.set_unknown(CONDITION_DRIFTED, now=T0 + timedelta(hours=1))
        assert conditions.get(CONDITION_DRIFTED).status == CONDITION_UNKNOWN

    def test_clear(self):
        conditions = ConditionSet([])
        conditions.set_true(CONDITION_DRIFTED, now=T0)

        assert conditions.clear(CONDITION_DRIFTED)
        assert not conditions.clear(CONDITION_DRIFTED)
        assert conditions.get(CONDITION_DRIFTED) is None


class TestNodeClaimLifecycle:
    def test_phase_follows_conditions(self, nodeclaim):
        conditions = nodeclaim.status_conditions()
        assert nodeclaim.phase == Phase.CREATED

        conditions.set_true(CONDITION_LAUNCHED, now=T0)
        assert nodeclaim.phase == Phase.LAUNCHED

        conditions.set_true(CONDITION_REGISTERED, now=T0)
        assert nodeclaim.phase == Phase.REGISTERED

        conditions.set_true(CONDITION_DRIFTED, now=T0)
        assert nodeclaim.phase == Phase.DRIFTED

        nodeclaim.metadata.deletion_timestamp = T0
        assert nodeclaim.phase == Phase.TERMINATING

    def test_cannot_register_before_launch(self, nodeclaim):
        with pytest.raises(IllegalTransitionError, match="Created to Registered"):
            nodeclaim.status_conditions().set_true(CONDITION_REGISTERED, now=T0)

        assert nodeclaim.status_conditions().get(CONDITION_REGISTERED) is None

    def test_registered_false_is_allowed_before_launch(self, nodeclaim):
        nodeclaim.status_conditions().set_false(CONDITION_REGISTERED, "NotLaunched", "Node not launched", now=T0)

        assert nodeclaim.phase == Phase.CREATED

    def test_terminating_is_final(self):
        assert TRANSITIONS[Phase.TERMINATING] == frozenset()
        for phase in Phase:
            assert can_transition(phase, Phase.TERMINATING)

    def test_check_transition(self):
        check_transition(Phase.LAUNCHED, Phase.REGISTERED)
        with pytest.raises(IllegalTransitionError):
            check_transition(Phase.DRIFTED, Phase.REGISTERED)
