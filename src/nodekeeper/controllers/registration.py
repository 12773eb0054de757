# src/nodekeeper/controllers/registration.py
"""
NodeClaim registration.

Once a NodeClaim is launched, waits for the Node with the same provider id
to join the cluster, adopts it (finalizer, owner reference, labels,
annotations, taints) and marks the NodeClaim Registered. The allocatable
reported by the real Node is recorded in the shared cache for the claim's
NodePool and instance type.
"""

import logging
from datetime import timedelta
from typing import Optional

from ..core.cache import DEFAULT_TTL, AllocatableCache, allocatable_cache_key
from ..core.clock import Clock, RealClock
from ..core.config import config
from ..core.exceptions import DuplicateNodeError, NodeKeeperError, NodeNotFoundError, NotFoundError
from ..core.manager import Manager, ReconcileResult
from ..core.telemetry import NODECLAIMS_REGISTERED, NODES_CREATED, Telemetry
from ..models.labels import (
    CONDITION_LAUNCHED,
    CONDITION_REGISTERED,
    NODE_REGISTERED_LABEL_KEY,
    TERMINATION_FINALIZER,
)
from ..models.node import Node
from ..models.nodeclaim import NodeClaim
from ..storage.base_store import ObjectStore
from ..utils.k8s_utils import memory_mebibytes
from ..utils.nodeclaim import node_for_nodeclaim, update_node_owner_references
from ..utils.taints import merge_taints

logger = logging.getLogger(__name__)

NAME = "nodeclaim.registration"


class RegistrationController:
    def __init__(
        self,
        store: ObjectStore,
        cache: AllocatableCache,
        clock: Optional[Clock] = None,
        telemetry: Optional[Telemetry] = None,
        cache_ttl: Optional[timedelta] = None,
    ):
        self.store = store
        self.cache = cache
        self.clock = clock or RealClock()
        self.telemetry = telemetry or Telemetry()
        self.cache_ttl = cache_ttl or DEFAULT_TTL

    async def reconcile(self, name: str) -> ReconcileResult:
        try:
            nodeclaim = await self.store.get(NodeClaim, name)
        except NotFoundError:
            return ReconcileResult()
        if nodeclaim.deleting:
            return ReconcileResult()
        stored = nodeclaim.snapshot()

        try:
            registered = await self.register_nodeclaim(nodeclaim)
        except NodeKeeperError:
            # Keep the status reached before the failure; the retry starts from it
            try:
                await self._patch_nodeclaim(nodeclaim, stored)
            except NodeKeeperError as patch_error:
                logger.warning("Failed to write status of NodeClaim '%s': %s", nodeclaim.name, patch_error)
            raise
        await self._patch_nodeclaim(nodeclaim, stored)
        if registered:
            self._emit_registered(nodeclaim)
        return ReconcileResult()

    async def _patch_nodeclaim(self, nodeclaim: NodeClaim, stored: NodeClaim):
        if nodeclaim == stored:
            return
        try:
            await self.store.patch(nodeclaim, stored)
        except NotFoundError:
            logger.debug("NodeClaim '%s' was deleted before its status was written", nodeclaim.name)

    async def register_nodeclaim(self, nodeclaim: NodeClaim) -> bool:
        """
        Moves ``nodeclaim`` towards Registered in place.

        Returns:
            True if the NodeClaim became Registered during this call.

        Raises:
            NodeKeeperError: If the Node could not be looked up or synced.
        """
        conditions = nodeclaim.status_conditions()
        now = self.clock.now()
        if conditions.is_true(CONDITION_REGISTERED):
            return False
        if not conditions.is_true(CONDITION_LAUNCHED):
            conditions.set_false(CONDITION_REGISTERED, "NotLaunched", "Node not launched", now=now)
            return False

        try:
            node = await node_for_nodeclaim(self.store, nodeclaim)
        except NodeNotFoundError:
            conditions.set_false(CONDITION_REGISTERED, "NodeNotFound", "Node not registered with cluster", now=now)
            return False
        except DuplicateNodeError as e:
            logger.error("Invariant violated for NodeClaim '%s': %s", nodeclaim.name, e)
            conditions.set_false(
                CONDITION_REGISTERED, "MultipleNodesFound", "Invariant violated, matched multiple nodes", now=now
            )
            return False
        except NodeKeeperError as e:
            raise NodeKeeperError(f"getting node for nodeclaim {nodeclaim.name}, {e}") from e

        try:
            await self.sync_node(nodeclaim, node)
        except NodeKeeperError as e:
            raise NodeKeeperError(f"syncing node {node.name}, {e}") from e

        logger.info(
            "Registered NodeClaim '%s' (provider-id=%s, node=%s)",
            nodeclaim.name,
            nodeclaim.status.provider_id,
            node.name,
        )
        conditions.set_true(CONDITION_REGISTERED, now=now)
        nodeclaim.status.node_name = node.name
        return True

    async def sync_node(self, nodeclaim: NodeClaim, node: Node):
        """
        Adopts ``node`` for ``nodeclaim`` and records its observed allocatable.
        The Node is only written when something changed.
        """
        stored = node.snapshot()
        node.add_finalizer(TERMINATION_FINALIZER)

        self._record_allocatable(nodeclaim, stored)

        update_node_owner_references(nodeclaim, node)
        node.spec.taints = merge_taints(node.spec.taints, nodeclaim.spec.taints)
        node.spec.taints = merge_taints(node.spec.taints, nodeclaim.spec.startup_taints)
        node.metadata.annotations.update(nodeclaim.metadata.annotations)
        node.metadata.labels.update(nodeclaim.metadata.labels)
        node.metadata.labels[NODE_REGISTERED_LABEL_KEY] = "true"

        if node != stored:
            await self.store.patch(node, stored)

    def _record_allocatable(self, nodeclaim: NodeClaim, node: Node):
        key = allocatable_cache_key(nodeclaim.nodepool_name or "", nodeclaim.instance_type or "")
        observed = dict(node.status.allocatable)

        old_mi = memory_mebibytes(nodeclaim.status.allocatable)
        new_mi = memory_mebibytes(observed)
        if old_mi != new_mi:
            logger.debug("Updating nodeclaim allocatable %sMi=>%sMi (cacheMapKey=%s)", old_mi, new_mi, key)

        self.cache.set(key, observed, self.cache_ttl)
        nodeclaim.status.allocatable = dict(observed)

    def _emit_registered(self, nodeclaim: NodeClaim):
        nodepool = nodeclaim.nodepool_name or ""
        self.telemetry.increment(NODECLAIMS_REGISTERED, nodepool=nodepool)
        self.telemetry.increment(NODES_CREATED, nodepool=nodepool)

    def register(self, manager: Manager, max_concurrent_reconciles: Optional[int] = None):
        return manager.register(
            NAME,
            self.reconcile,
            for_kind=NodeClaim,
            owns=(Node,),
            max_concurrent_reconciles=max_concurrent_reconciles or config.REGISTRATION_MAX_CONCURRENT_RECONCILES,
        )
