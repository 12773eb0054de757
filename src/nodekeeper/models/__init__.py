from .lifecycle import Phase
from .metadata import Condition, ObjectMeta, OwnerReference, Taint
from .node import Node, NodeSpec, NodeStatus
from .nodeclaim import NodeClaim, NodeClaimSpec, NodeClaimStatus
from .nodepool import NodeClaimTemplate, NodePool, NodePoolSpec, TemplateMetadata

__all__ = [
    "Condition",
    "Node",
    "NodeClaim",
    "NodeClaimSpec",
    "NodeClaimStatus",
    "NodeClaimTemplate",
    "NodePool",
    "NodePoolSpec",
    "NodeSpec",
    "NodeStatus",
    "ObjectMeta",
    "OwnerReference",
    "Phase",
    "Taint",
    "TemplateMetadata",
]
