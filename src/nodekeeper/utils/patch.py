# src/nodekeeper/utils/patch.py
"""JSON merge patch (RFC 7386) computed from a snapshot and its modified copy."""

from typing import Any, Dict


def create_merge_patch(original: Dict[str, Any], modified: Dict[str, Any]) -> Dict[str, Any]:
    """
    Returns the merge patch that turns ``original`` into ``modified``.

    Keys missing from ``modified`` map to None (delete). Nested objects are
    diffed recursively; lists and scalars are replaced whole. An empty result
    means the two documents are equal.
    """
    patch: Dict[str, Any] = {}
    for key, old in original.items():
        if key not in modified:
            patch[key] = None
    for key, new in modified.items():
        old = original.get(key)
        if isinstance(old, dict) and isinstance(new, dict):
            nested = create_merge_patch(old, new)
            if nested:
                patch[key] = nested
        elif key not in original or old != new:
            patch[key] = new
    return patch


def apply_merge_patch(target: Any, patch: Any) -> Any:
    """Applies a merge patch to ``target`` and returns the result (``target`` is not modified)."""
    if not isinstance(patch, dict):
        return patch
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = apply_merge_patch(result.get(key), value)
    return result
