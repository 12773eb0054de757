# src/nodekeeper/cloudprovider/fake.py
"""In-memory cloud provider for tests and local dry runs."""

import logging
import threading
import uuid
from typing import Dict, List, Optional

from ..core.exceptions import NodeClaimNotFoundError
from ..models.labels import LABEL_INSTANCE_TYPE_STABLE
from ..models.nodeclaim import NodeClaim
from .base import CloudProvider

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_TYPE = "default-instance-type"
DEFAULT_CAPACITY = {"cpu": "4", "memory": "16Gi", "pods": "110"}
DEFAULT_ALLOCATABLE = {"cpu": "3900m", "memory": "15Gi", "pods": "110"}


class FakeCloudProvider(CloudProvider):
    def __init__(self, instance_type: str = DEFAULT_INSTANCE_TYPE):
        self.instance_type = instance_type
        self._instances: Dict[str, NodeClaim] = {}
        self._lock = threading.Lock()
        self.create_calls: List[NodeClaim] = []
        self.delete_calls: List[NodeClaim] = []
        # When set, get() raises it instead of answering
        self.next_get_error: Optional[Exception] = None

    def reset(self):
        with self._lock:
            self._instances.clear()
            self.create_calls.clear()
            self.delete_calls.clear()
            self.next_get_error = None

    async def create(self, nodeclaim: NodeClaim) -> NodeClaim:
        created = nodeclaim.model_copy(deep=True)
        created.status.provider_id = f"fake:///{uuid.uuid4()}"
        created.status.capacity = dict(DEFAULT_CAPACITY)
        created.status.allocatable = dict(DEFAULT_ALLOCATABLE)
        created.metadata.labels.setdefault(LABEL_INSTANCE_TYPE_STABLE, self.instance_type)
        with self._lock:
            self._instances[created.status.provider_id] = created
            self.create_calls.append(nodeclaim)
        return created.model_copy(deep=True)

    async def get(self, provider_id: str) -> NodeClaim:
        with self._lock:
            if self.next_get_error is not None:
                error, self.next_get_error = self.next_get_error, None
                raise error
            instance = self._instances.get(provider_id)
        if instance is None:
            raise NodeClaimNotFoundError(f"no instance exists with provider id '{provider_id}'")
        return instance.model_copy(deep=True)

    async def list(self) -> List[NodeClaim]:
        with self._lock:
            return [i.model_copy(deep=True) for i in self._instances.values()]

    async def delete(self, nodeclaim: NodeClaim) -> None:
        provider_id = nodeclaim.status.provider_id
        with self._lock:
            self.delete_calls.append(nodeclaim)
            if provider_id not in self._instances:
                raise NodeClaimNotFoundError(f"no instance exists with provider id '{provider_id}'")
            del self._instances[provider_id]
        logger.debug("Deleted fake instance %s", provider_id)
