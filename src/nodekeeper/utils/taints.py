from typing import Iterable, List

from nodekeeper.models.metadata import Taint


def merge_taints(existing: Iterable[Taint], additions: Iterable[Taint]) -> List[Taint]:
    """
    Returns ``existing`` plus every taint from ``additions`` whose key and
    effect are not already present. Existing taints are never overwritten.
    """
    merged = list(existing)
    for taint in additions:
        if not any(taint.matches(t) for t in merged):
            merged.append(taint.model_copy())
    return merged
