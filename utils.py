"""
utils.py

Utility functions for the PipeSync editor core.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Union


def as_list(value: Any) -> List[Any]:
    """
    Normalize a tree value that may be one child or many children.

    Args:
        value: A single child, a list of children, or None

    Returns:
        A list (empty for None)
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def attr(node: Any, name: str) -> Optional[str]:
    """Read an ``@name`` entry from a tree node, tolerating leaf values."""
    if isinstance(node, dict):
        return node.get("@" + name)
    return None


_COORD_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(?:px)?\s*$")


def parse_coordinate(value: Union[str, int, float, None]) -> Optional[int]:
    """
    Parse a coordinate as stored in markup or reported by the diagram.

    Accepts ints, floats and strings such as "120", "120px" or "12.5".
    Floats are rounded to the nearest pixel.

    Args:
        value: Raw coordinate value

    Returns:
        The integer coordinate, or None when the value is missing or invalid
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(round(value))
    m = _COORD_RE.match(str(value))
    if not m:
        return None
    return int(round(float(m.group(1))))


def truncate_preview(text: str, length: int) -> str:
    """Shorten a preview text the way the diagram shows it ("abc...")."""
    return text[:length] + "..."


def escape_attr_value(value: str) -> str:
    """Escape a value for use inside a double-quoted markup attribute."""
    return (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace('"', "&quot;")
    )
