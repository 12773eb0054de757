# tests/utils/test_k8s_utils.py

from decimal import Decimal

import pytest

from nodekeeper.models.metadata import Taint
from nodekeeper.utils.k8s_utils import memory_mebibytes, parse_quantity
from nodekeeper.utils.taints import merge_taints


@pytest.mark.parametrize(
    "quantity, expected",
    [
        ("100m", Decimal("0.1")),
        ("2", Decimal(2)),
        ("1Ki", Decimal(1024)),
        ("14Gi", Decimal(14 * 1024**3)),
        ("1G", Decimal(10**9)),
        (None, Decimal(0)),
        ("garbage", Decimal(0)),
    ],
)
def test_parse_quantity(quantity, expected):
    assert parse_quantity(quantity) == expected


def test_memory_mebibytes():
    assert memory_mebibytes({"memory": "15Gi"}) == 15360
    assert memory_mebibytes({"cpu": "4"}) == 0
    assert memory_mebibytes(None) == 0


def test_merge_taints_keeps_existing_values():
    existing = [Taint(key="dedicated", value="other", effect="NoSchedule")]
    additions = [
        Taint(key="dedicated", value="ml", effect="NoSchedule"),
        Taint(key="dedicated", value="ml", effect="NoExecute"),
    ]

    merged = merge_taints(existing, additions)

    assert [(t.key, t.value, t.effect) for t in merged] == [
        ("dedicated", "other", "NoSchedule"),
        ("dedicated", "ml", "NoExecute"),
    ]
