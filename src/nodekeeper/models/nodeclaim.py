# src/nodekeeper/models/nodeclaim.py

from typing import ClassVar, Dict, List, Optional

from pydantic import Field

from nodekeeper.core.exceptions import IllegalTransitionError

from .conditions import ConditionSet
from .labels import (
    API_VERSION,
    CONDITION_DRIFTED,
    CONDITION_LAUNCHED,
    CONDITION_REGISTERED,
    CONDITION_TRUE,
    LABEL_INSTANCE_TYPE_STABLE,
    NODEPOOL_LABEL_KEY,
)
from .lifecycle import Phase, check_transition
from .metadata import Condition, KubeModel, KubeObject, Taint


class NodeSelectorRequirement(KubeModel):
    key: str
    operator: str
    values: List[str] = Field(default_factory=list)
    min_values: Optional[int] = None


class NodeClassReference(KubeModel):
    group: str
    kind: str
    name: str


class ResourceRequirements(KubeModel):
    requests: Dict[str, str] = Field(default_factory=dict)


class NodeClaimSpec(KubeModel):
    taints: List[Taint] = Field(default_factory=list)
    startup_taints: List[Taint] = Field(default_factory=list)
    requirements: List[NodeSelectorRequirement] = Field(default_factory=list)
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)
    node_class_ref: Optional[NodeClassReference] = None
    expire_after: Optional[str] = None
    termination_grace_period: Optional[str] = None


class NodeClaimStatus(KubeModel):
    provider_id: Optional[str] = Field(None, alias="providerID")
    image_id: Optional[str] = Field(None, alias="imageID")
    node_name: Optional[str] = None
    capacity: Dict[str, str] = Field(default_factory=dict)
    allocatable: Dict[str, str] = Field(default_factory=dict)
    conditions: List[Condition] = Field(default_factory=list)


class NodeClaim(KubeObject):
    """
    A request for, and record of, a single compute unit.

    Belongs to the NodePool named by its ``karpenter.sh/nodepool`` label.
    """

    API_VERSION: ClassVar[str] = API_VERSION
    KIND: ClassVar[str] = "NodeClaim"
    PLURAL: ClassVar[str] = "nodeclaims"

    spec: NodeClaimSpec = Field(default_factory=NodeClaimSpec)
    status: NodeClaimStatus = Field(default_factory=NodeClaimStatus)

    @property
    def nodepool_name(self) -> Optional[str]:
        return self.metadata.labels.get(NODEPOOL_LABEL_KEY)

    @property
    def instance_type(self) -> Optional[str]:
        return self.metadata.labels.get(LABEL_INSTANCE_TYPE_STABLE)

    def status_conditions(self) -> ConditionSet:
        return ConditionSet(self.status.conditions, guard=self._guard_condition)

    def _guard_condition(self, condition_type: str, status: str):
        if condition_type == CONDITION_REGISTERED and status == CONDITION_TRUE:
            # Drift does not gate registration, so only launch progress is checked
            launched = self.status_conditions().is_true(CONDITION_LAUNCHED)
            try:
                check_transition(Phase.LAUNCHED if launched else Phase.CREATED, Phase.REGISTERED)
            except IllegalTransitionError as e:
                raise IllegalTransitionError(f"nodeclaim {self.name}: {e}") from e

    @property
    def phase(self) -> Phase:
        conditions = self.status_conditions()
        if self.deleting:
            return Phase.TERMINATING
        if not conditions.is_true(CONDITION_LAUNCHED):
            return Phase.CREATED
        if conditions.is_true(CONDITION_DRIFTED):
            return Phase.DRIFTED
        if conditions.is_true(CONDITION_REGISTERED):
            return Phase.REGISTERED
        return Phase.LAUNCHED
