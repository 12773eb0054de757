# src/nodekeeper/storage/kubernetes_store.py
"""
Object store backed by the Kubernetes API server.

NodePools and NodeClaims are cluster-scoped custom objects served through
``CustomObjectsApi``; Nodes go through ``CoreV1Api``. Writes are JSON merge
patches carrying the snapshot's resourceVersion.
"""

import logging
from typing import Dict, List, Optional, Type

from kubernetes_asyncio import client
from kubernetes_asyncio.client.rest import ApiException

from ..core.exceptions import ConflictError, NotFoundError, ObjectStoreError
from ..models.metadata import KubeObject
from ..models.node import Node
from .base_store import ObjectStore, T, build_patch

logger = logging.getLogger(__name__)

MERGE_PATCH = "application/merge-patch+json"


def _translate(exc: ApiException, action: str, kind: str, name: str = "") -> ObjectStoreError:
    target = f'{kind.lower()} "{name}"' if name else kind.lower()
    message = f"{action} {target}: {exc.status} {exc.reason}"
    if exc.status == 404:
        return NotFoundError(message)
    if exc.status == 409:
        return ConflictError(message)
    return ObjectStoreError(message)


def _selector(labels: Optional[Dict[str, str]]) -> Optional[str]:
    if not labels:
        return None
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


class KubernetesObjectStore(ObjectStore):
    def __init__(self, api_client: client.ApiClient):
        self._api_client = api_client
        self._core = client.CoreV1Api(api_client)
        self._custom = client.CustomObjectsApi(api_client)

    async def close(self):
        await self._api_client.close()
        logger.debug("Kubernetes object store client closed.")

    def _to_model(self, model: Type[T], raw) -> T:
        if not isinstance(raw, dict):
            raw = self._api_client.sanitize_for_serialization(raw)
        return model.model_validate(raw)

    @staticmethod
    def _group_version(model: Type[KubeObject]):
        group, version = model.API_VERSION.split("/")
        return group, version

    async def get(self, model: Type[T], name: str) -> T:
        try:
            if model is Node:
                raw = await self._core.read_node(name)
            else:
                group, version = self._group_version(model)
                raw = await self._custom.get_cluster_custom_object(group, version, model.PLURAL, name)
        except ApiException as e:
            raise _translate(e, "getting", model.KIND, name) from e
        return self._to_model(model, raw)

    async def list(self, model: Type[T], labels: Optional[Dict[str, str]] = None) -> List[T]:
        selector = _selector(labels)
        kwargs = {"label_selector": selector} if selector else {}
        try:
            if model is Node:
                result = await self._core.list_node(**kwargs)
                items = result.items or []
            else:
                group, version = self._group_version(model)
                result = await self._custom.list_cluster_custom_object(group, version, model.PLURAL, **kwargs)
                items = result.get("items", [])
        except ApiException as e:
            raise _translate(e, "listing", model.KIND) from e
        return [self._to_model(model, item) for item in items]

    async def create(self, obj: T) -> T:
        body = obj.to_dict()
        try:
            if isinstance(obj, Node):
                raw = await self._core.create_node(body)
            else:
                group, version = self._group_version(type(obj))
                raw = await self._custom.create_cluster_custom_object(group, version, obj.PLURAL, body)
        except ApiException as e:
            raise _translate(e, "creating", obj.KIND, obj.name) from e
        return self._to_model(type(obj), raw)

    async def patch(self, obj: T, stored: T) -> T:
        body = build_patch(obj, stored)
        if not body:
            return obj
        try:
            if isinstance(obj, Node):
                raw = await self._core.patch_node(obj.name, body, _content_type=MERGE_PATCH)
            else:
                raw = await self._patch_custom(obj, body)
        except ApiException as e:
            raise _translate(e, "patching", obj.KIND, obj.name) from e
        patched = self._to_model(type(obj), raw)
        obj.metadata.resource_version = patched.metadata.resource_version
        return patched

    async def _patch_custom(self, obj: KubeObject, body: dict):
        """Custom resources keep status in a subresource, so it is patched separately."""
        group, version = self._group_version(type(obj))
        status = body.pop("status", None)
        raw = None
        if set(body) - {"metadata"} or set(body.get("metadata", {})) - {"resourceVersion"}:
            raw = await self._custom.patch_cluster_custom_object(
                group, version, obj.PLURAL, obj.name, body, _content_type=MERGE_PATCH
            )
        if status is not None:
            status_body = {"status": status}
            resource_version = (raw or {}).get("metadata", {}).get("resourceVersion") or body.get(
                "metadata", {}
            ).get("resourceVersion")
            if resource_version:
                status_body["metadata"] = {"resourceVersion": resource_version}
            raw = await self._custom.patch_cluster_custom_object_status(
                group, version, obj.PLURAL, obj.name, status_body, _content_type=MERGE_PATCH
            )
        return raw

    async def delete(self, obj: KubeObject) -> None:
        try:
            if isinstance(obj, Node):
                await self._core.delete_node(obj.name)
            else:
                group, version = self._group_version(type(obj))
                await self._custom.delete_cluster_custom_object(group, version, obj.PLURAL, obj.name)
        except ApiException as e:
            raise _translate(e, "deleting", obj.KIND, obj.name) from e
