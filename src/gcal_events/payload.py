"""Dot-path access over nested event payloads.

Google Calendar event resources are plain JSON trees. These helpers read and
write a single leaf addressed by a dot-separated path such as ``start.date``.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any


def split_path(path: str) -> list[str]:
    """Split *path* on dots, rejecting empty paths and empty segments."""
    if not isinstance(path, str) or not path:
        raise ValueError("field path must be a non-empty string")
    segments = path.split(".")
    if any(not segment for segment in segments):
        raise ValueError(f"field path contains an empty segment: {path!r}")
    return segments


def get_path(tree: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Return the value at *path*, or *default* when any segment is missing."""
    node: Any = tree
    for segment in split_path(path):
        if not isinstance(node, Mapping) or segment not in node:
            return default
        node = node[segment]
    return node


def set_path(tree: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Set *value* at *path*, creating intermediate dicts as needed.

    An intermediate value that is not a mapping is replaced by an empty dict.
    """
    segments = split_path(path)
    node = tree
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, MutableMapping):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = value
