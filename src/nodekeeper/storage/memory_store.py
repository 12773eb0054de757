# src/nodekeeper/storage/memory_store.py
"""
In-process object store with API-server semantics: resourceVersion
preconditions, finalizer-aware deletion and label selection.

Used by the test-suite and for local dry runs.
"""

import copy
import logging
import threading
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Type

from ..core.exceptions import ConflictError, NotFoundError
from ..models.metadata import KubeObject
from ..utils.date_utils import to_iso_z
from ..utils.patch import apply_merge_patch
from .base_store import ObjectStore, T, build_patch, labels_match

logger = logging.getLogger(__name__)


class InMemoryObjectStore(ObjectStore):
    def __init__(self):
        self._objects: Dict[Tuple[str, str], dict] = {}
        self._resource_version = 0
        self._lock = threading.Lock()
        # Mutating calls that reached the store, by verb
        self.writes: Counter = Counter()

    @property
    def mutations(self) -> int:
        return sum(self.writes.values())

    def _next_resource_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    async def get(self, model: Type[T], name: str) -> T:
        with self._lock:
            data = self._objects.get((model.KIND, name))
            if data is None:
                raise NotFoundError(f'{model.KIND.lower()} "{name}" not found')
            return model.model_validate(copy.deepcopy(data))

    async def list(self, model: Type[T], labels: Optional[Dict[str, str]] = None) -> List[T]:
        with self._lock:
            return [
                model.model_validate(copy.deepcopy(data))
                for (kind, _), data in sorted(self._objects.items())
                if kind == model.KIND and labels_match(data.get("metadata", {}).get("labels") or {}, labels)
            ]

    async def create(self, obj: T) -> T:
        key = (obj.KIND, obj.name)
        with self._lock:
            if key in self._objects:
                raise ConflictError(f'{obj.KIND.lower()} "{obj.name}" already exists')
            data = obj.to_dict()
            metadata = data["metadata"]
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata.setdefault("creationTimestamp", to_iso_z(datetime.now(timezone.utc)))
            metadata["resourceVersion"] = self._next_resource_version()
            metadata.pop("deletionTimestamp", None)
            self._objects[key] = data
            self.writes["create"] += 1
            return type(obj).model_validate(copy.deepcopy(data))

    async def patch(self, obj: T, stored: T) -> T:
        body = build_patch(obj, stored)
        if not body:
            return obj
        key = (obj.KIND, obj.name)
        with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise NotFoundError(f'{obj.KIND.lower()} "{obj.name}" not found')
            expected = body.get("metadata", {}).get("resourceVersion")
            if expected is not None and expected != current["metadata"].get("resourceVersion"):
                raise ConflictError(
                    f'Operation cannot be fulfilled on {obj.PLURAL} "{obj.name}": '
                    "the object has been modified; please apply your changes to the latest version and try again"
                )
            updated = apply_merge_patch(current, body)
            updated["metadata"]["resourceVersion"] = self._next_resource_version()
            self.writes["patch"] += 1
            if updated["metadata"].get("deletionTimestamp") and not updated["metadata"].get("finalizers"):
                del self._objects[key]
            else:
                self._objects[key] = updated
            obj.metadata.resource_version = updated["metadata"]["resourceVersion"]
            return type(obj).model_validate(copy.deepcopy(updated))

    async def delete(self, obj: KubeObject) -> None:
        key = (obj.KIND, obj.name)
        with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise NotFoundError(f'{obj.KIND.lower()} "{obj.name}" not found')
            self.writes["delete"] += 1
            if current["metadata"].get("finalizers"):
                if not current["metadata"].get("deletionTimestamp"):
                    current["metadata"]["deletionTimestamp"] = to_iso_z(datetime.now(timezone.utc))
                    current["metadata"]["resourceVersion"] = self._next_resource_version()
                return
            del self._objects[key]
