# src/nodekeeper/models/node.py

from typing import ClassVar, Dict, List, Optional

from pydantic import Field

from .conditions import ConditionSet
from .labels import CONDITION_UNKNOWN, NODE_CONDITION_READY
from .metadata import Condition, KubeModel, KubeObject, Taint


class NodeSpec(KubeModel):
    provider_id: Optional[str] = Field(None, alias="providerID")
    taints: List[Taint] = Field(default_factory=list)
    unschedulable: Optional[bool] = None


class NodeStatus(KubeModel):
    """
    Pydantic model for the observed state of a cluster Node.

    Attributes:
        capacity: Raw resources of the machine (e.g. {'cpu': '4', 'memory': '16Gi'})
        allocatable: Resources left for workloads once system reservations are taken
        conditions: Health conditions reported by the kubelet (Ready, MemoryPressure, ...)
    """

    capacity: Dict[str, str] = Field(default_factory=dict)
    allocatable: Dict[str, str] = Field(default_factory=dict)
    conditions: List[Condition] = Field(default_factory=list)


class Node(KubeObject):
    API_VERSION: ClassVar[str] = "v1"
    KIND: ClassVar[str] = "Node"
    PLURAL: ClassVar[str] = "nodes"

    spec: NodeSpec = Field(default_factory=NodeSpec)
    status: NodeStatus = Field(default_factory=NodeStatus)

    @property
    def provider_id(self) -> Optional[str]:
        return self.spec.provider_id

    def ready_status(self) -> str:
        """Returns 'True', 'False' or 'Unknown' for the node's Ready condition."""
        condition = ConditionSet(self.status.conditions).get(NODE_CONDITION_READY)
        if condition is None:
            return CONDITION_UNKNOWN
        return condition.status
