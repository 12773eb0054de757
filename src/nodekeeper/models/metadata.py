# src/nodekeeper/models/metadata.py

from datetime import datetime
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class KubeModel(BaseModel):
    """
    Base for every model that mirrors a Kubernetes object or sub-object.

    Fields are snake_case in Python and camelCase on the wire. Unknown fields
    sent by the API server are ignored; they never appear in a patch because
    patches are computed from the difference of two dumps.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_dict(self) -> dict:
        """Serializes the model the way the API server expects it."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OwnerReference(KubeModel):
    api_version: str = Field(..., description="API version of the owner")
    kind: str = Field(..., description="Kind of the owner")
    name: str = Field(..., description="Name of the owner")
    uid: str = Field(..., description="UID of the owner")
    controller: Optional[bool] = None
    block_owner_deletion: Optional[bool] = None


class ObjectMeta(KubeModel):
    name: str = Field(..., description="Object name")
    namespace: Optional[str] = None
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    generation: Optional[int] = None
    creation_timestamp: Optional[datetime] = None
    deletion_timestamp: Optional[datetime] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    finalizers: List[str] = Field(default_factory=list)
    owner_references: List[OwnerReference] = Field(default_factory=list)


class Taint(KubeModel):
    key: str
    effect: str
    value: Optional[str] = None
    time_added: Optional[datetime] = None

    def matches(self, other: "Taint") -> bool:
        """Two taints are the same taint when key and effect match."""
        return self.key == other.key and self.effect == other.effect


class Condition(KubeModel):
    type: str
    status: str
    reason: Optional[str] = None
    message: Optional[str] = None
    last_transition_time: Optional[datetime] = None
    observed_generation: Optional[int] = None


class KubeObject(KubeModel):
    """A top-level object with metadata. Subclasses declare how they are addressed."""

    API_VERSION: ClassVar[str] = "v1"
    KIND: ClassVar[str] = ""
    PLURAL: ClassVar[str] = ""

    api_version: Optional[str] = None
    kind: Optional[str] = None
    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> Dict[str, str]:
        return self.metadata.labels

    @property
    def annotations(self) -> Dict[str, str]:
        return self.metadata.annotations

    @property
    def deleting(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def snapshot(self):
        """Returns a deep copy to diff against before writing."""
        return self.model_copy(deep=True)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.setdefault("apiVersion", self.API_VERSION)
        data.setdefault("kind", self.KIND)
        return data

    def add_finalizer(self, finalizer: str) -> bool:
        if finalizer in self.metadata.finalizers:
            return False
        self.metadata.finalizers.append(finalizer)
        return True
