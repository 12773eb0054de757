# src/nodekeeper/controllers/nodepool_hash.py
"""
NodePool hash controller.

Stamps every NodePool with a digest of the fields that count for static
drift, together with the version of the hashing scheme. When the scheme
version changes, the stored hashes on the pool's NodeClaims are no longer
comparable, so they are brought to the new version here.
"""

import logging
from typing import Optional

from ..core.cache import AllocatableCache, allocatable_cache_prefix
from ..core.config import config
from ..core.exceptions import NotFoundError, ignore_not_found
from ..core.manager import BatchResult, Manager, ReconcileResult
from ..models.labels import (
    CONDITION_DRIFTED,
    NODEPOOL_HASH_ANNOTATION_KEY,
    NODEPOOL_HASH_VERSION,
    NODEPOOL_HASH_VERSION_ANNOTATION_KEY,
    NODEPOOL_LABEL_KEY,
)
from ..models.nodeclaim import NodeClaim
from ..models.nodepool import NodePool
from ..storage.base_store import ObjectStore

logger = logging.getLogger(__name__)

NAME = "nodepool.hash"


class DriftHashController:
    def __init__(self, store: ObjectStore, cache: AllocatableCache, hash_version: str = NODEPOOL_HASH_VERSION):
        self.store = store
        self.cache = cache
        self.hash_version = hash_version

    async def reconcile(self, name: str) -> ReconcileResult:
        try:
            nodepool = await self.store.get(NodePool, name)
        except NotFoundError:
            return ReconcileResult()
        stored = nodepool.snapshot()

        if nodepool.stored_hash_version != self.hash_version:
            await self._update_nodeclaim_hashes(nodepool)

        nodepool.metadata.annotations.update(
            {
                NODEPOOL_HASH_ANNOTATION_KEY: nodepool.hash(),
                NODEPOOL_HASH_VERSION_ANNOTATION_KEY: self.hash_version,
            }
        )

        if nodepool != stored:
            # Capacity observed under the old template no longer describes this pool
            cleared = self.cache.delete_if(lambda key, _: self._should_clear(key, nodepool.name))
            if cleared:
                logger.info("Cleared %d allocatable cache entries for NodePool '%s'", cleared, nodepool.name)
            try:
                await self.store.patch(nodepool, stored)
            except NotFoundError:
                return ReconcileResult()
        return ReconcileResult()

    @staticmethod
    def _should_clear(key: str, nodepool_name: str) -> bool:
        if key.startswith(allocatable_cache_prefix(nodepool_name)):
            logger.debug("Clearing allocatable cache entry '%s'", key)
            return True
        return False

    async def _update_nodeclaim_hashes(self, nodepool: NodePool):
        """
        Brings every NodeClaim of the pool to the current hash version.

        A NodeClaim that is already drifted keeps its old hash: under the new
        scheme it is impossible to tell whether it is still drifted, and the
        drift signal must not be lost. Failures are collected so one bad
        NodeClaim does not hold back its siblings.

        Raises:
            ObjectStoreError: If the NodeClaims cannot be listed.
            AggregateError: If any NodeClaim could not be patched.
        """
        nodeclaims = await self.store.list(NodeClaim, labels={NODEPOOL_LABEL_KEY: nodepool.name})
        pool_hash = nodepool.hash()

        batch = BatchResult()
        for nodeclaim in nodeclaims:
            batch.add(await self._update_nodeclaim_hash(nodeclaim, pool_hash))
        batch.raise_if_errors(f"updating nodeclaim hashes for nodepool {nodepool.name}")

    async def _update_nodeclaim_hash(self, nodeclaim: NodeClaim, pool_hash: str) -> Optional[Exception]:
        if nodeclaim.metadata.annotations.get(NODEPOOL_HASH_VERSION_ANNOTATION_KEY) == self.hash_version:
            return None
        stored = nodeclaim.snapshot()

        nodeclaim.metadata.annotations[NODEPOOL_HASH_VERSION_ANNOTATION_KEY] = self.hash_version
        if nodeclaim.status_conditions().get(CONDITION_DRIFTED) is None:
            nodeclaim.metadata.annotations[NODEPOOL_HASH_ANNOTATION_KEY] = pool_hash

        if nodeclaim == stored:
            return None
        try:
            await self.store.patch(nodeclaim, stored)
        except Exception as e:
            error = ignore_not_found(e)
            if error is not None:
                logger.warning("Failed to update hash on NodeClaim '%s': %s", nodeclaim.name, error)
            return error
        return None

    def register(self, manager: Manager, max_concurrent_reconciles: Optional[int] = None):
        return manager.register(
            NAME,
            self.reconcile,
            for_kind=NodePool,
            max_concurrent_reconciles=max_concurrent_reconciles or config.HASH_MAX_CONCURRENT_RECONCILES,
        )
