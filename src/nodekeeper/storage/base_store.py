# src/nodekeeper/storage/base_store.py
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Type, TypeVar

from ..models.metadata import KubeObject
from ..utils.patch import create_merge_patch

T = TypeVar("T", bound=KubeObject)


def build_patch(obj: KubeObject, stored: KubeObject) -> dict:
    """
    Returns the merge patch from ``stored`` to ``obj``, or {} when nothing changed.

    A non-empty patch carries the snapshot's resourceVersion so the server
    rejects it if the object was written since it was read.
    """
    patch = create_merge_patch(stored.to_dict(), obj.to_dict())
    if not patch:
        return {}
    if stored.metadata.resource_version:
        patch.setdefault("metadata", {})["resourceVersion"] = stored.metadata.resource_version
    return patch


def labels_match(labels: Dict[str, str], selector: Optional[Dict[str, str]]) -> bool:
    if not selector:
        return True
    return all(labels.get(k) == v for k, v in selector.items())


class ObjectStore(ABC):
    """
    Abstract base class for the cluster object store.
    Defines the contract the controllers read and write objects through.
    """

    @abstractmethod
    async def get(self, model: Type[T], name: str) -> T:
        """
        Fetches a single object.

        Raises:
            NotFoundError: If the object does not exist.
        """
        pass

    @abstractmethod
    async def list(self, model: Type[T], labels: Optional[Dict[str, str]] = None) -> List[T]:
        """
        Lists objects of a kind, optionally filtered by an equality label selector.
        """
        pass

    @abstractmethod
    async def create(self, obj: T) -> T:
        pass

    @abstractmethod
    async def patch(self, obj: T, stored: T) -> T:
        """
        Writes the difference between ``stored`` (the snapshot taken when the
        object was read) and ``obj``. Does nothing when they are equal.

        Raises:
            NotFoundError: If the object no longer exists.
            ConflictError: If the object changed since ``stored`` was read.
        """
        pass

    @abstractmethod
    async def delete(self, obj: KubeObject) -> None:
        """
        Requests deletion. Objects with finalizers are only marked for deletion.

        Raises:
            NotFoundError: If the object does not exist.
        """
        pass
