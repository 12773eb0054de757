# tests/conftest.py

import uuid
from datetime import datetime, timezone

import pytest

from nodekeeper.cloudprovider.fake import FakeCloudProvider
from nodekeeper.controllers.registration import RegistrationController
from nodekeeper.core.cache import AllocatableCache
from nodekeeper.core.clock import FakeClock
from nodekeeper.models.labels import (
    CONDITION_FALSE,
    CONDITION_LAUNCHED,
    CONDITION_TRUE,
    LABEL_INSTANCE_TYPE_STABLE,
    NODE_CONDITION_READY,
    NODEPOOL_LABEL_KEY,
    TERMINATION_FINALIZER,
)
from nodekeeper.models.metadata import Condition, ObjectMeta
from nodekeeper.models.node import Node, NodeSpec, NodeStatus
from nodekeeper.models.nodeclaim import NodeClaim
from nodekeeper.models.nodepool import NodePool
from nodekeeper.storage.memory_store import InMemoryObjectStore


@pytest.fixture(autouse=True)
def mock_settings_env_vars(monkeypatch):
    """
    Keeps the config predictable and isolated from the actual environment.
    """
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("GC_CONSISTENCY_WINDOW", raising=False)
    monkeypatch.delenv("ALLOCATABLE_CACHE_TTL", raising=False)


@pytest.fixture
def store():
    """A fresh in-memory cluster for each test."""
    return InMemoryObjectStore()


@pytest.fixture
def cloud_provider():
    return FakeCloudProvider()


@pytest.fixture
def clock():
    return FakeClock(datetime.now(timezone.utc))


@pytest.fixture
def cache():
    return AllocatableCache()


@pytest.fixture
def registration_controller(store, cache, clock):
    return RegistrationController(store, cache, clock=clock)


def _name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def make_nodepool():
    def _make(name=None, **spec) -> NodePool:
        return NodePool.model_validate({"metadata": {"name": name or _name("default")}, "spec": spec})

    return _make


@pytest.fixture
def make_nodeclaim():
    def _make(nodepool: NodePool = None, name=None, annotations=None, labels=None, **spec) -> NodeClaim:
        all_labels = dict(labels or {})
        if nodepool is not None:
            all_labels[NODEPOOL_LABEL_KEY] = nodepool.name
        return NodeClaim(
            metadata=ObjectMeta(
                name=name or _name("nodeclaim"),
                labels=all_labels,
                annotations=dict(annotations or {}),
                finalizers=[TERMINATION_FINALIZER],
            ),
            spec=spec or {},
        )

    return _make


@pytest.fixture
def launch_nodeclaim(store, cloud_provider, clock):
    """
    Creates the instance for a stored NodeClaim in the fake cloud and marks the
    NodeClaim Launched at the current (fake) time.
    """

    async def _launch(nodeclaim: NodeClaim) -> NodeClaim:
        nodeclaim = await store.get(NodeClaim, nodeclaim.name)
        stored = nodeclaim.snapshot()
        instance = await cloud_provider.create(nodeclaim)
        nodeclaim.status.provider_id = instance.status.provider_id
        nodeclaim.status.capacity = instance.status.capacity
        nodeclaim.status.allocatable = instance.status.allocatable
        nodeclaim.metadata.labels[LABEL_INSTANCE_TYPE_STABLE] = instance.metadata.labels[LABEL_INSTANCE_TYPE_STABLE]
        nodeclaim.status_conditions().set_true(CONDITION_LAUNCHED, now=clock.now())
        return await store.patch(nodeclaim, stored)

    return _launch


@pytest.fixture
def make_node():
    def _make(nodeclaim: NodeClaim, ready: bool = True, allocatable=None, name=None, **spec) -> Node:
        return Node(
            metadata=ObjectMeta(
                name=name or f"node-{nodeclaim.name}",
                labels={LABEL_INSTANCE_TYPE_STABLE: nodeclaim.instance_type or ""},
            ),
            spec=NodeSpec(provider_id=nodeclaim.status.provider_id, **spec),
            status=NodeStatus(
                capacity=dict(nodeclaim.status.capacity),
                allocatable=dict(allocatable if allocatable is not None else {"cpu": "3800m", "memory": "14Gi"}),
                conditions=[
                    Condition(
                        type=NODE_CONDITION_READY,
                        status=CONDITION_TRUE if ready else CONDITION_FALSE,
                        reason="KubeletReady" if ready else "KubeletNotReady",
                    )
                ],
            ),
        )

    return _make


@pytest.fixture
def deploy_nodeclaim(store, launch_nodeclaim, make_node, registration_controller):
    """
    Launches a stored NodeClaim, lets its Node join (unless ``with_node`` is
    False) and runs registration. Returns the fresh NodeClaim and the Node.
    """

    async def _deploy(nodeclaim: NodeClaim, with_node: bool = True):
        nodeclaim = await launch_nodeclaim(nodeclaim)
        node = None
        if with_node:
            node = await store.create(make_node(nodeclaim))
        await registration_controller.reconcile(nodeclaim.name)
        nodeclaim = await store.get(NodeClaim, nodeclaim.name)
        if node is not None:
            node = await store.get(Node, node.name)
        return nodeclaim, node

    return _deploy


@pytest.fixture
def make_node_not_ready(store):
    async def _not_ready(node: Node) -> Node:
        node = await store.get(Node, node.name)
        stored = node.snapshot()
        for condition in node.status.conditions:
            if condition.type == NODE_CONDITION_READY:
                condition.status = CONDITION_FALSE
                condition.reason = "KubeletNotReady"
        return await store.patch(node, stored)

    return _not_ready
