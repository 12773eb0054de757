# src/nodekeeper/cloudprovider/base.py
from abc import ABC, abstractmethod
from typing import List

from ..models.nodeclaim import NodeClaim


class CloudProvider(ABC):
    """
    Abstract base class for the cloud provider that owns the instances behind
    NodeClaims. Instances are returned as NodeClaims carrying the provider's
    view (provider id, capacity, labels).
    """

    @abstractmethod
    async def create(self, nodeclaim: NodeClaim) -> NodeClaim:
        """Launches an instance for the NodeClaim and returns its resolved view."""
        pass

    @abstractmethod
    async def get(self, provider_id: str) -> NodeClaim:
        """
        Looks up the instance with the given provider id.

        Raises:
            NodeClaimNotFoundError: If the instance does not exist.
        """
        pass

    @abstractmethod
    async def list(self) -> List[NodeClaim]:
        pass

    @abstractmethod
    async def delete(self, nodeclaim: NodeClaim) -> None:
        """
        Terminates the instance behind the NodeClaim.

        Raises:
            NodeClaimNotFoundError: If the instance is already gone.
        """
        pass

    @property
    def name(self) -> str:
        return type(self).__name__
