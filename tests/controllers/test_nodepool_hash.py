# tests/controllers/test_nodepool_hash.py

from unittest.mock import patch

import pytest

from nodekeeper.controllers.nodepool_hash import DriftHashController
from nodekeeper.core.cache import allocatable_cache_key
from nodekeeper.core.exceptions import AggregateError, ConflictError, NotFoundError
from nodekeeper.models.labels import (
    CONDITION_DRIFTED,
    CONDITION_FALSE,
    CONDITION_TRUE,
    NODEPOOL_HASH_ANNOTATION_KEY,
    NODEPOOL_HASH_VERSION,
    NODEPOOL_HASH_VERSION_ANNOTATION_KEY,
)
from nodekeeper.models.metadata import Taint
from nodekeeper.models.nodeclaim import NodeClaim
from nodekeeper.models.nodepool import NodePool

STALE_VERSION = "test-version"


@pytest.fixture
def controller(store, cache):
    return DriftHashController(store, cache)


@pytest.fixture
async def nodepool(store, make_nodepool):
    pool = make_nodepool(
        name="default",
        template={
            "metadata": {"labels": {"team": "ml"}},
            "spec": {"taints": [{"key": "dedicated", "value": "ml", "effect": "NoSchedule"}]},
        },
    )
    return await store.create(pool)


async def _stale_pool(store, nodepool: NodePool) -> NodePool:
    """Rewrites the pool's annotations as if an older scheme had stamped them."""
    nodepool = await store.get(NodePool, nodepool.name)
    stored = nodepool.snapshot()
    nodepool.metadata.annotations[NODEPOOL_HASH_ANNOTATION_KEY] = "abceduefed"
    nodepool.metadata.annotations[NODEPOOL_HASH_VERSION_ANNOTATION_KEY] = STALE_VERSION
    return await store.patch(nodepool, stored)


def _stale_annotations():
    return {NODEPOOL_HASH_ANNOTATION_KEY: "123456", NODEPOOL_HASH_VERSION_ANNOTATION_KEY: STALE_VERSION}


@pytest.mark.asyncio
async def test_stamps_hash_and_version_on_nodepool(store, controller, nodepool):
    await controller.reconcile(nodepool.name)

    nodepool = await store.get(NodePool, nodepool.name)
    assert nodepool.stored_hash == nodepool.hash()
    assert nodepool.stored_hash_version == NODEPOOL_HASH_VERSION


@pytest.mark.asyncio
async def test_converged_nodepool_is_not_written(store, controller, nodepool):
    await controller.reconcile(nodepool.name)
    writes_before = store.mutations

    await controller.reconcile(nodepool.name)

    assert store.mutations == writes_before


@pytest.mark.asyncio
async def test_template_change_updates_hash(store, controller, nodepool):
    await controller.reconcile(nodepool.name)
    old_hash = (await store.get(NodePool, nodepool.name)).stored_hash

    nodepool = await store.get(NodePool, nodepool.name)
    stored = nodepool.snapshot()
    nodepool.spec.template.spec.taints.append(Taint(key="gpu", effect="NoSchedule"))
    await store.patch(nodepool, stored)

    await controller.reconcile(nodepool.name)

    new_hash = (await store.get(NodePool, nodepool.name)).stored_hash
    assert new_hash != old_hash


@pytest.mark.asyncio
async def test_stale_version_updates_nodeclaim_hashes(store, controller, nodepool, make_nodeclaim):
    nodepool = await _stale_pool(store, nodepool)
    nodeclaim = await store.create(make_nodeclaim(nodepool, annotations=_stale_annotations()))

    await controller.reconcile(nodepool.name)

    nodepool = await store.get(NodePool, nodepool.name)
    nodeclaim = await store.get(NodeClaim, nodeclaim.name)
    assert nodeclaim.metadata.annotations[NODEPOOL_HASH_ANNOTATION_KEY] == nodepool.stored_hash
    assert nodeclaim.metadata.annotations[NODEPOOL_HASH_VERSION_ANNOTATION_KEY] == NODEPOOL_HASH_VERSION


@pytest.mark.asyncio
@pytest.mark.parametrize("drifted_status", [CONDITION_TRUE, CONDITION_FALSE])
async def test_drifted_nodeclaim_keeps_its_hash(store, controller, nodepool, make_nodeclaim, drifted_status):
    nodepool = await _stale_pool(store, nodepool)
    nodeclaim = make_nodeclaim(nodepool, annotations=_stale_annotations())
    nodeclaim.status_conditions().set(CONDITION_DRIFTED, drifted_status, "NodePoolDrifted", "")
    nodeclaim = await store.create(nodeclaim)

    await controller.reconcile(nodepool.name)

    nodeclaim = await store.get(NodeClaim, nodeclaim.name)
    assert nodeclaim.metadata.annotations[NODEPOOL_HASH_ANNOTATION_KEY] == "123456"
    assert nodeclaim.metadata.annotations[NODEPOOL_HASH_VERSION_ANNOTATION_KEY] == NODEPOOL_HASH_VERSION


@pytest.mark.asyncio
async def test_nodeclaim_on_current_version_is_untouched(store, controller, nodepool, make_nodeclaim):
    nodepool = await _stale_pool(store, nodepool)
    nodeclaim = await store.create(
        make_nodeclaim(
            nodepool,
            annotations={
                NODEPOOL_HASH_ANNOTATION_KEY: "123456",
                NODEPOOL_HASH_VERSION_ANNOTATION_KEY: NODEPOOL_HASH_VERSION,
            },
        )
    )
    resource_version = nodeclaim.metadata.resource_version

    await controller.reconcile(nodepool.name)

    nodeclaim = await store.get(NodeClaim, nodeclaim.name)
    assert nodeclaim.metadata.resource_version == resource_version
    assert nodeclaim.metadata.annotations[NODEPOOL_HASH_ANNOTATION_KEY] == "123456"


@pytest.mark.asyncio
async def test_nodeclaims_of_other_pools_are_untouched(store, controller, nodepool, make_nodepool, make_nodeclaim):
    nodepool = await _stale_pool(store, nodepool)
    other = await store.create(make_nodepool(name="other"))
    nodeclaim = await store.create(make_nodeclaim(other, annotations=_stale_annotations()))

    await controller.reconcile(nodepool.name)

    nodeclaim = await store.get(NodeClaim, nodeclaim.name)
    assert nodeclaim.metadata.annotations == _stale_annotations()


@pytest.mark.asyncio
async def test_hash_change_clears_only_this_pools_cache_entries(store, cache, controller, nodepool):
    cache.set(allocatable_cache_key("default", "m5.large"), {"memory": "7Gi"})
    cache.set(allocatable_cache_key("default", "m5.xlarge"), {"memory": "15Gi"})
    cache.set(allocatable_cache_key("default-2", "m5.large"), {"memory": "7Gi"})
    cache.set(allocatable_cache_key("other", "m5.large"), {"memory": "7Gi"})

    await controller.reconcile(nodepool.name)

    assert sorted(cache.items()) == [
        allocatable_cache_key("default-2", "m5.large"),
        allocatable_cache_key("other", "m5.large"),
    ]


@pytest.mark.asyncio
async def test_converged_pool_keeps_cache_entries(store, cache, controller, nodepool):
    await controller.reconcile(nodepool.name)
    key = allocatable_cache_key("default", "m5.large")
    cache.set(key, {"memory": "7Gi"})

    await controller.reconcile(nodepool.name)

    assert cache.get(key) == {"memory": "7Gi"}


@pytest.mark.asyncio
async def test_nodeclaim_conflict_is_aggregated(store, controller, nodepool, make_nodeclaim):
    nodepool = await _stale_pool(store, nodepool)
    failing = await store.create(make_nodeclaim(nodepool, name="a-failing", annotations=_stale_annotations()))
    healthy = await store.create(make_nodeclaim(nodepool, name="b-healthy", annotations=_stale_annotations()))

    original_patch = store.patch

    async def _patch(obj, stored):
        if obj.name == failing.name:
            raise ConflictError(f'Operation cannot be fulfilled on nodeclaims "{obj.name}"')
        return await original_patch(obj, stored)

    with patch.object(store, "patch", side_effect=_patch):
        with pytest.raises(AggregateError) as excinfo:
            await controller.reconcile(nodepool.name)

    assert [type(e) for e in excinfo.value.errors] == [ConflictError]
    healthy = await store.get(NodeClaim, healthy.name)
    assert healthy.metadata.annotations[NODEPOOL_HASH_VERSION_ANNOTATION_KEY] == NODEPOOL_HASH_VERSION
    # The pool keeps its stale version so the next reconcile retries the migration
    assert (await store.get(NodePool, nodepool.name)).stored_hash_version == STALE_VERSION


@pytest.mark.asyncio
async def test_nodeclaim_deleted_during_migration_is_ignored(store, controller, nodepool, make_nodeclaim):
    nodepool = await _stale_pool(store, nodepool)
    nodeclaim = await store.create(make_nodeclaim(nodepool, annotations=_stale_annotations()))

    original_patch = store.patch

    async def _patch(obj, stored):
        if obj.name == nodeclaim.name:
            raise NotFoundError(f'nodeclaim "{obj.name}" not found')
        return await original_patch(obj, stored)

    with patch.object(store, "patch", side_effect=_patch):
        await controller.reconcile(nodepool.name)

    assert (await store.get(NodePool, nodepool.name)).stored_hash_version == NODEPOOL_HASH_VERSION


@pytest.mark.asyncio
async def test_missing_nodepool_is_a_no_op(store, controller):
    result = await controller.reconcile("does-not-exist")

    assert result.requeue_after is None
    assert store.mutations == 0
