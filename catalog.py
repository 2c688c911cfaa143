"""
catalog.py

Reference data handed to the editor core by its host: the stage catalog
(palette of stage kinds), saved adapter configurations and schema text.
Retrieval is the host's job; these helpers only turn the payloads into
typed values.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Union

from debug_trace import trace
from markup.legacy import to_current_syntax
from markup.spans import scan
from models import ADAPTER_TAG, STAGE_SUFFIX, SavedConfiguration, StageKind

_ADAPTER_BLOCK_RE = re.compile(r"<([aA]dapter)\b.*?</\1\s*>", re.S)


def kind_label(name: str) -> str:
    """Element name for a stage kind: ``Xslt`` -> ``XsltPipe``."""
    if name.endswith(STAGE_SUFFIX):
        return name
    return name + STAGE_SUFFIX


def parse_stage_catalog(data: Union[str, List[Any]]) -> List[StageKind]:
    """Parse the stage catalog.

    Args:
        data: Catalog JSON text or the decoded list of groups.  Each group
            holds ``classes``, a list of ``{"name", "packageName"}`` entries.

    Returns:
        Stage kinds in catalog order, without duplicates.

    Raises:
        json.JSONDecodeError: If ``data`` is text that is not JSON.
    """
    if isinstance(data, str):
        data = json.loads(data)
    if not isinstance(data, list):
        trace(f"catalog is a {type(data).__name__}, expected a list", "CATALOG")
        return []

    kinds: List[StageKind] = []
    seen = set()
    for group in data:
        if not isinstance(group, dict):
            continue
        for entry in group.get("classes") or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            name = entry["name"]
            if name in seen:
                continue
            seen.add(name)
            kinds.append(StageKind(name, entry.get("packageName", ""), kind_label(name)))
    trace(f"catalog: {len(kinds)} stage kinds", "CATALOG")
    return kinds


def split_configurations(payload: str) -> List[SavedConfiguration]:
    """Split a saved-configuration payload into one entry per adapter block.

    Old-syntax blocks are converted to the current syntax.
    """
    configurations = []
    for m in _ADAPTER_BLOCK_RE.finditer(payload):
        text = to_current_syntax(m.group(0))
        name = ""
        for element in scan(text).iter():
            if element.tag.lower() == ADAPTER_TAG.lower():
                name = element.get("name", "")
                break
        configurations.append(SavedConfiguration(name, text))
    trace(f"{len(configurations)} saved configurations", "CATALOG")
    return configurations
