# src/nodekeeper/core/manager.py
"""
Controller registration and a small dispatcher.

Controllers declare what they watch and how many keys they may reconcile at
once; the manager fans keys out under that bound. Rate-limited per-key retry
is left to the periodic resync: a key that failed is simply reconciled again
on the next pass.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Type

from ..models.metadata import KubeObject
from ..storage.base_store import ObjectStore
from .exceptions import AggregateError
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    requeue_after: Optional[timedelta] = None


@dataclass
class BatchResult:
    """Collects per-item failures of a fan-out without stopping at the first one."""

    errors: List[Exception] = field(default_factory=list)

    def add(self, error: Optional[Exception]):
        if error is not None:
            self.errors.append(error)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_if_errors(self, message: Optional[str] = None):
        if self.errors:
            raise AggregateError(self.errors, message)


@dataclass
class ControllerRegistration:
    name: str
    reconcile: Callable[..., Awaitable[ReconcileResult]]
    for_kind: Optional[Type[KubeObject]] = None
    owns: Tuple[Type[KubeObject], ...] = ()
    max_concurrent_reconciles: int = 1

    @property
    def singleton(self) -> bool:
        return self.for_kind is None


class Manager:
    def __init__(self, store: ObjectStore):
        self.store = store
        self.controllers: Dict[str, ControllerRegistration] = {}
        self._scheduler: Optional[Scheduler] = None

    def register(
        self,
        name: str,
        reconcile: Callable[..., Awaitable[ReconcileResult]],
        for_kind: Optional[Type[KubeObject]] = None,
        owns: Iterable[Type[KubeObject]] = (),
        max_concurrent_reconciles: int = 1,
    ) -> ControllerRegistration:
        """
        Registers a controller. Without ``for_kind`` the controller is a
        singleton whose ``reconcile`` takes no key.
        """
        if name in self.controllers:
            raise ValueError(f"controller '{name}' is already registered")
        if max_concurrent_reconciles < 1:
            raise ValueError("max_concurrent_reconciles must be at least 1")
        registration = ControllerRegistration(
            name=name,
            reconcile=reconcile,
            for_kind=for_kind,
            owns=tuple(owns),
            max_concurrent_reconciles=max_concurrent_reconciles,
        )
        self.controllers[name] = registration
        logger.info(
            "Registered controller '%s' (for=%s, max concurrent reconciles=%d)",
            name,
            for_kind.KIND if for_kind else "singleton",
            max_concurrent_reconciles,
        )
        return registration

    async def dispatch(self, name: str, keys: Iterable[str]) -> Dict[str, Optional[Exception]]:
        """
        Reconciles every key once, at most ``max_concurrent_reconciles`` at a time.

        Returns:
            A mapping of key to the exception its reconcile raised, or None.
        """
        registration = self.controllers[name]
        semaphore = asyncio.Semaphore(registration.max_concurrent_reconciles)

        async def _reconcile(key: str) -> Tuple[str, Optional[Exception]]:
            async with semaphore:
                try:
                    await registration.reconcile(key)
                    return key, None
                except Exception as e:
                    logger.error("Reconciler error in '%s' for '%s': %s", name, key, e)
                    return key, e

        results = await asyncio.gather(*(_reconcile(k) for k in dict.fromkeys(keys)))
        return dict(results)

    async def resync(self) -> ReconcileResult:
        """Lists every watched kind and dispatches all keys to its controllers."""
        errors = []
        for name, registration in self.controllers.items():
            if registration.singleton:
                continue
            objects = await self.store.list(registration.for_kind)
            results = await self.dispatch(name, [o.name for o in objects])
            errors.extend(e for e in results.values() if e is not None)
        if errors:
            logger.warning("Resync finished with %d failed reconciles; they will be retried.", len(errors))
        return ReconcileResult()

    def start(self, resync_interval: timedelta):
        """Schedules the resync loop and one loop per singleton controller."""
        self._scheduler = Scheduler()
        self._scheduler.add_job(self.resync, resync_interval)
        for registration in self.controllers.values():
            if registration.singleton:
                self._scheduler.add_job(registration.reconcile, resync_interval)

    async def stop(self):
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None
