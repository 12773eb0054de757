# src/nodekeeper/operator.py
"""
Builds the process: one allocatable cache, one object store, one cloud
provider, and the controllers that share them, registered on a manager.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .cloudprovider.base import CloudProvider
from .controllers.garbage_collection import GarbageCollectionController
from .controllers.nodepool_hash import DriftHashController
from .controllers.registration import RegistrationController
from .core.cache import AllocatableCache
from .core.clock import Clock, RealClock
from .core.config import config
from .core.manager import Manager
from .core.telemetry import Telemetry
from .storage.base_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class Operator:
    manager: Manager
    cache: AllocatableCache
    hash_controller: DriftHashController
    registration_controller: RegistrationController
    garbage_collection_controller: GarbageCollectionController

    async def run_once(self):
        """Reconciles every NodePool and NodeClaim once, then sweeps for garbage."""
        await self.manager.resync()
        await self.garbage_collection_controller.reconcile()

    def start(self):
        self.manager.start(config.RESYNC_INTERVAL)

    async def stop(self):
        await self.manager.stop()


def new_operator(
    store: ObjectStore,
    cloud_provider: CloudProvider,
    clock: Optional[Clock] = None,
    telemetry: Optional[Telemetry] = None,
    cache: Optional[AllocatableCache] = None,
) -> Operator:
    clock = clock or RealClock()
    telemetry = telemetry or Telemetry()
    cache = cache or AllocatableCache(default_ttl=config.ALLOCATABLE_CACHE_TTL)

    manager = Manager(store)
    hash_controller = DriftHashController(store, cache)
    registration_controller = RegistrationController(
        store, cache, clock=clock, telemetry=telemetry, cache_ttl=config.ALLOCATABLE_CACHE_TTL
    )
    garbage_collection_controller = GarbageCollectionController(
        store, cloud_provider, clock=clock, telemetry=telemetry
    )

    hash_controller.register(manager)
    registration_controller.register(manager)
    garbage_collection_controller.register(manager)
    logger.info("Operator ready with cloud provider '%s'", cloud_provider.name)

    return Operator(
        manager=manager,
        cache=cache,
        hash_controller=hash_controller,
        registration_controller=registration_controller,
        garbage_collection_controller=garbage_collection_controller,
    )
