# src/nodekeeper/controllers/garbage_collection.py
"""
NodeClaim garbage collection.

Removes registered NodeClaims whose cloud instance no longer exists. Cloud
inventories are eventually consistent, so a claim is only considered once
its launch is older than the consistency window, and a Node that still
reports Ready is trusted over a missing instance.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Dict, List, Optional

from ..cloudprovider.base import CloudProvider
from ..core.clock import Clock, RealClock
from ..core.config import config
from ..core.exceptions import NodeClaimNotFoundError, NodeLookupError, NotFoundError
from ..core.manager import BatchResult, Manager, ReconcileResult
from ..core.telemetry import NODECLAIMS_TERMINATED, Telemetry
from ..models.labels import CONDITION_LAUNCHED, CONDITION_REGISTERED, CONDITION_TRUE
from ..models.node import Node
from ..models.nodeclaim import NodeClaim
from ..storage.base_store import ObjectStore
from ..utils.nodeclaim import index_nodes_by_provider_id, single_node

logger = logging.getLogger(__name__)

NAME = "nodeclaim.garbagecollection"


class GarbageCollectionController:
    def __init__(
        self,
        store: ObjectStore,
        cloud_provider: CloudProvider,
        clock: Optional[Clock] = None,
        telemetry: Optional[Telemetry] = None,
        consistency_window: Optional[timedelta] = None,
        interval: Optional[timedelta] = None,
        max_concurrent: Optional[int] = None,
    ):
        self.store = store
        self.cloud_provider = cloud_provider
        self.clock = clock or RealClock()
        self.telemetry = telemetry or Telemetry()
        self.consistency_window = consistency_window if consistency_window is not None else config.GC_CONSISTENCY_WINDOW
        self.interval = interval or config.GC_INTERVAL
        self.max_concurrent = max_concurrent or config.GC_MAX_CONCURRENT

    async def reconcile(self) -> ReconcileResult:
        """
        Sweeps all NodeClaims once.

        Raises:
            ObjectStoreError: If the NodeClaims or Nodes cannot be listed.
            AggregateError: If any candidate could not be evaluated or deleted.
        """
        nodeclaims = await self.store.list(NodeClaim)
        candidates = [nc for nc in nodeclaims if self._is_candidate(nc)]
        if not candidates:
            return ReconcileResult(requeue_after=self.interval)
        # One Node listing serves the whole sweep
        nodes_by_provider_id = index_nodes_by_provider_id(await self.store.list(Node))

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def _bounded(nodeclaim: NodeClaim) -> Optional[Exception]:
            async with semaphore:
                return await self._collect(nodeclaim, nodes_by_provider_id)

        batch = BatchResult()
        for error in await asyncio.gather(*(_bounded(nc) for nc in candidates)):
            batch.add(error)
        batch.raise_if_errors("garbage collecting nodeclaims")
        return ReconcileResult(requeue_after=self.interval)

    def _is_candidate(self, nodeclaim: NodeClaim) -> bool:
        """
        Only registered claims old enough for the inventory to have caught up.
        A claim that never registered cannot be told apart from one whose
        instance the provider has not listed yet.
        """
        if nodeclaim.deleting:
            return False
        conditions = nodeclaim.status_conditions()
        if not conditions.is_true(CONDITION_REGISTERED):
            return False
        launched = conditions.get(CONDITION_LAUNCHED)
        if launched is None or launched.status != CONDITION_TRUE or launched.last_transition_time is None:
            return False
        return self.clock.since(launched.last_transition_time) >= self.consistency_window

    async def _collect(self, nodeclaim: NodeClaim, nodes_by_provider_id: Dict[str, List[Node]]) -> Optional[Exception]:
        """Decides and acts on one NodeClaim. Returns the failure, if any."""
        try:
            await self.cloud_provider.get(nodeclaim.status.provider_id)
            return None
        except NodeClaimNotFoundError:
            pass
        except Exception as e:
            return e

        try:
            node = single_node(nodeclaim, nodes_by_provider_id.get(nodeclaim.status.provider_id or "", []))
        except NodeLookupError:
            # Node deleted under us, or an invalid duplicate: nothing left to protect
            node = None

        # A Ready node means the kubelet is still running, whatever the inventory says
        if node is not None and node.ready_status() == CONDITION_TRUE:
            return None

        try:
            await self._delete(nodeclaim)
        except NotFoundError:
            return None
        except Exception as e:
            return e

        logger.info(
            "Garbage collecting NodeClaim '%s' with no cloudprovider representation (provider-id=%s)",
            nodeclaim.name,
            nodeclaim.status.provider_id,
        )
        self.telemetry.increment(
            NODECLAIMS_TERMINATED,
            reason="garbage_collected",
            nodepool=nodeclaim.nodepool_name or "",
        )
        return None

    async def _delete(self, nodeclaim: NodeClaim):
        """Drops the NodeClaim's finalizers, then deletes it."""
        if nodeclaim.metadata.finalizers:
            stored = nodeclaim.snapshot()
            nodeclaim.metadata.finalizers = []
            await self.store.patch(nodeclaim, stored)
        await self.store.delete(nodeclaim)

    def register(self, manager: Manager):
        return manager.register(NAME, self.reconcile)
