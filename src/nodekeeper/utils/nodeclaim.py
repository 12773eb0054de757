# src/nodekeeper/utils/nodeclaim.py
"""Helpers that relate a NodeClaim to the Node backing it."""

from collections import defaultdict
from typing import Dict, Iterable, List

from ..core.exceptions import DuplicateNodeError, NodeNotFoundError
from ..models.metadata import OwnerReference
from ..models.node import Node
from ..models.nodeclaim import NodeClaim
from ..storage.base_store import ObjectStore


async def nodes_for_nodeclaim(store: ObjectStore, nodeclaim: NodeClaim) -> List[Node]:
    """Returns every Node whose provider id matches the NodeClaim's."""
    provider_id = nodeclaim.status.provider_id
    if not provider_id:
        return []
    # The API server cannot select nodes by spec.providerID, so filter here
    return [n for n in await store.list(Node) if n.spec.provider_id == provider_id]


def index_nodes_by_provider_id(nodes: Iterable[Node]) -> Dict[str, List[Node]]:
    """Groups Nodes by provider id. Nodes without one are left out."""
    index: Dict[str, List[Node]] = defaultdict(list)
    for node in nodes:
        if node.spec.provider_id:
            index[node.spec.provider_id].append(node)
    return dict(index)


async def node_for_nodeclaim(store: ObjectStore, nodeclaim: NodeClaim) -> Node:
    """
    Resolves the single Node backing a NodeClaim.

    Raises:
        NodeNotFoundError: If no Node matches the provider id.
        DuplicateNodeError: If more than one Node matches.
        ObjectStoreError: If the Nodes cannot be listed.
    """
    return single_node(nodeclaim, await nodes_for_nodeclaim(store, nodeclaim))


def single_node(nodeclaim: NodeClaim, nodes: List[Node]) -> Node:
    """
    Returns the only Node in ``nodes``, the candidates for ``nodeclaim``.

    Raises:
        NodeNotFoundError: If ``nodes`` is empty.
        DuplicateNodeError: If it holds more than one Node.
    """
    if not nodes:
        raise NodeNotFoundError(f"no nodes found for provider id '{nodeclaim.status.provider_id}'")
    if len(nodes) > 1:
        names = ", ".join(n.name for n in nodes)
        raise DuplicateNodeError(
            f"expected a single node for provider id '{nodeclaim.status.provider_id}', got {len(nodes)} ({names})"
        )
    return nodes[0]


def update_node_owner_references(nodeclaim: NodeClaim, node: Node) -> Node:
    """Adds an owner reference to the NodeClaim on the Node, unless one exists."""
    uid = nodeclaim.metadata.uid or ""
    if not any(ref.uid == uid and ref.kind == NodeClaim.KIND for ref in node.metadata.owner_references):
        node.metadata.owner_references.append(
            OwnerReference(
                api_version=NodeClaim.API_VERSION,
                kind=NodeClaim.KIND,
                name=nodeclaim.name,
                uid=uid,
                block_owner_deletion=True,
            )
        )
    return node
