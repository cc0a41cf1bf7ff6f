"""
Nested metadata from dotted key paths.

``{"a.b.c": 1}`` becomes ``{"a": {"b": {"c": 1}}}``. Nested mappings are
normalized at every depth and merged with dotted siblings that share a
prefix.
"""

import logging
from typing import Any, Dict, List, Mapping


logger = logging.getLogger(__name__)

# Sentinel for a path that runs into a non-mapping value.
_CONFLICT = object()


def _merge(existing: Any, new: Any) -> Any:
    if existing == new:
        return new
    if not (isinstance(existing, dict) and isinstance(new, dict)):
        return _CONFLICT
    
    merged = dict(existing)
    for key, value in new.items():
        if key in merged:
            value = _merge(merged[key], value)
            if value is _CONFLICT:
                return _CONFLICT
        merged[key] = value
    return merged


def _place(node: Dict[Any, Any], path: List[str], value: Any) -> Any:
    """Return a copy of ``node`` with ``value`` stored under ``path``."""
    head, rest = path[0], path[1:]
    
    if rest:
        child = node.get(head, {})
        if not isinstance(child, dict):
            return _CONFLICT
        value = _place(child, rest, value)
    elif head in node:
        value = _merge(node[head], value)
    
    if value is _CONFLICT:
        return _CONFLICT
    placed = dict(node)
    placed[head] = value
    return placed


def unflatten(obj: Any) -> Any:
    """
    Convert dotted keys into nested mappings, recursively.
    
    The input is not modified. Input that is not a mapping is returned
    unchanged. A dotted key with an empty path segment, or whose path runs
    into a non-mapping value, is kept as a flat key and logged.
    
    Args:
        obj: Flat, nested or mixed mapping
        
    Returns:
        Equivalent nested mapping
    """
    if not isinstance(obj, Mapping):
        logger.debug(f"Skipping key normalization of {type(obj).__name__} value")
        return obj
    
    result: Dict[Any, Any] = {}
    dotted = []
    
    # Plain keys first so dotted paths merge into them regardless of key order
    for key, value in obj.items():
        if isinstance(value, Mapping):
            value = unflatten(value)
        if isinstance(key, str) and "." in key:
            dotted.append((key, value))
        else:
            result[key] = value
    
    for key, value in dotted:
        path = key.split(".")
        if not all(path):
            logger.warning(f"Skipping normalization of malformed key '{key}'")
            result[key] = value
            continue
        
        placed = _place(result, path, value)
        if placed is _CONFLICT:
            logger.warning(f"Skipping normalization of key '{key}': path collides with an existing value")
            result[key] = value
            continue
        result = placed
    
    return result
