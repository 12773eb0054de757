# src/nodekeeper/models/nodepool.py

import hashlib
import json
from typing import ClassVar, Dict, List, Optional

from pydantic import Field

from .labels import API_VERSION, NODEPOOL_HASH_ANNOTATION_KEY, NODEPOOL_HASH_VERSION_ANNOTATION_KEY
from .metadata import KubeModel, KubeObject, Taint
from .nodeclaim import NodeClaimSpec


class TemplateMetadata(KubeModel):
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class NodeClaimTemplate(KubeModel):
    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)
    spec: NodeClaimSpec = Field(default_factory=NodeClaimSpec)


class NodePoolSpec(KubeModel):
    template: NodeClaimTemplate = Field(default_factory=NodeClaimTemplate)
    limits: Dict[str, str] = Field(default_factory=dict)
    weight: Optional[int] = None
    disruption: Dict[str, object] = Field(default_factory=dict)


def _taint_set(taints: List[Taint]) -> List[dict]:
    # Taints are compared as a set, so order them canonically
    return sorted(
        ({"key": t.key, "value": t.value or "", "effect": t.effect} for t in taints),
        key=lambda t: (t["key"], t["effect"], t["value"]),
    )


class NodePool(KubeObject):
    """Template for NodeClaims, carrying the drift hash of its template."""

    API_VERSION: ClassVar[str] = API_VERSION
    KIND: ClassVar[str] = "NodePool"
    PLURAL: ClassVar[str] = "nodepools"

    spec: NodePoolSpec = Field(default_factory=NodePoolSpec)

    def drift_fields(self) -> dict:
        """
        Returns the fields whose change counts as static drift.

        Requirements, resources, limits and weight are left out: a change to
        them does not make existing NodeClaims stale.
        """
        template = self.spec.template
        node_class_ref = template.spec.node_class_ref
        return {
            "labels": dict(template.metadata.labels),
            "annotations": dict(template.metadata.annotations),
            "taints": _taint_set(template.spec.taints),
            "startupTaints": _taint_set(template.spec.startup_taints),
            "nodeClassRef": node_class_ref.to_dict() if node_class_ref else None,
            "expireAfter": template.spec.expire_after,
            "terminationGracePeriod": template.spec.termination_grace_period,
        }

    def hash(self) -> str:
        """Deterministic digest of ``drift_fields``."""
        encoded = json.dumps(self.drift_fields(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]

    @property
    def stored_hash(self) -> Optional[str]:
        return self.metadata.annotations.get(NODEPOOL_HASH_ANNOTATION_KEY)

    @property
    def stored_hash_version(self) -> Optional[str]:
        return self.metadata.annotations.get(NODEPOOL_HASH_VERSION_ANNOTATION_KEY)
