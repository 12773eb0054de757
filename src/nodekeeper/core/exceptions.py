from typing import Iterable, List, Optional


class NodeKeeperError(Exception):
    """Base exception for nodekeeper."""

    pass


class ObjectStoreError(NodeKeeperError):
    """Base exception for object store (cluster API) errors."""

    pass


class NotFoundError(ObjectStoreError):
    """Raised when the requested object does not exist."""

    pass


class ConflictError(ObjectStoreError):
    """Raised when a write is rejected because the object changed since it was read."""

    pass


class NodeLookupError(NodeKeeperError):
    """Base exception for resolving the Node that backs a NodeClaim."""

    pass


class NodeNotFoundError(NodeLookupError):
    """Raised when no Node carries the NodeClaim's provider id."""

    pass


class DuplicateNodeError(NodeLookupError):
    """Raised when more than one Node carries the NodeClaim's provider id."""

    pass


class CloudProviderError(NodeKeeperError):
    """Base exception for cloud provider errors."""

    pass


class NodeClaimNotFoundError(CloudProviderError):
    """Raised by a cloud provider when the instance behind a NodeClaim is gone."""

    pass


class IllegalTransitionError(NodeKeeperError):
    """Raised when a NodeClaim lifecycle change is not in the transition table."""

    pass


class AggregateError(NodeKeeperError):
    """
    Combines the failures of a batch into a single exception.

    The individual exceptions are kept on ``errors`` so callers and tests can
    inspect them.
    """

    def __init__(self, errors: Iterable[Exception], message: Optional[str] = None):
        self.errors: List[Exception] = list(errors)
        if message is None:
            message = "; ".join(str(e) for e in self.errors)
        super().__init__(message)


def ignore_not_found(exc: Optional[Exception]) -> Optional[Exception]:
    """Returns None for NotFoundError, otherwise the exception unchanged."""
    if isinstance(exc, NotFoundError):
        return None
    return exc
