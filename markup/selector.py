"""
markup/selector.py

Locate the adapter being edited inside a configuration tree.

A document is either a single ``<Adapter>`` or a ``<Configuration>`` that
holds adapters directly or grouped into ``<Module>`` elements.  Selection is
by name with a first-adapter fallback; nothing found yields
:data:`models.EMPTY_ADAPTER` rather than an exception.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from debug_trace import trace
from markup.spans import scan
from models import (
    ADAPTER_TAG,
    EMPTY_ADAPTER,
    EXIT_TAG,
    EXITS_TAG,
    MODULE_TAG,
    PIPELINE_TAG,
    RECEIVER_TAG,
    AdapterModel,
)
from utils import as_list, attr


def select_adapter(tree: Dict[str, Any], current_name: Optional[str] = None) -> AdapterModel:
    """Pick the adapter subtree named ``current_name`` out of a markup tree.

    Args:
        tree: ``{root_tag: root_value}`` as returned by ``to_tree``.
        current_name: Name of the adapter being edited, or None.

    Returns:
        The located adapter, or ``EMPTY_ADAPTER`` when the document has none.
    """
    if not tree:
        return EMPTY_ADAPTER
    root_tag, root = next(iter(tree.items()))

    if root_tag == ADAPTER_TAG:
        return _adapter_model(root)
    if not isinstance(root, dict):
        return EMPTY_ADAPTER

    modules = as_list(root.get(MODULE_TAG))
    if not modules:
        return _adapter_model(_pick(as_list(root.get(ADAPTER_TAG)), current_name))

    for module in modules:
        for adapter in _adapters_of(module):
            if current_name is not None and attr(adapter, "name") == current_name:
                return _adapter_model(adapter)

    first = _adapters_of(modules[0])
    if current_name is not None:
        trace(f"adapter {current_name!r} not found, using first of first module", "SYNC")
    return _adapter_model(first[0] if first else None)


def adapter_names(tree: Dict[str, Any]) -> List[str]:
    """List adapter names in document order."""
    if not tree:
        return []
    root_tag, root = next(iter(tree.items()))
    if root_tag == ADAPTER_TAG:
        adapters = [root]
    elif not isinstance(root, dict):
        return []
    else:
        adapters = list(as_list(root.get(ADAPTER_TAG)))
        for module in as_list(root.get(MODULE_TAG)):
            adapters.extend(_adapters_of(module))
    names = []
    for adapter in adapters:
        name = attr(adapter, "name")
        if name is not None:
            names.append(name)
    return names


def adapter_name_at(text: str, offset: int) -> Optional[str]:
    """Return the name of the last adapter opened before ``offset``.

    Used when the user clicks into the text: the adapter whose block holds
    the cursor becomes the one shown in the diagram.
    """
    name = None
    for element in scan(text).iter():
        if element.start > offset:
            break
        if element.tag == ADAPTER_TAG and element.get("name") is not None:
            name = element.get("name")
    return name


def _adapters_of(module: Any) -> List[Any]:
    if not isinstance(module, dict):
        return []
    return list(as_list(module.get(ADAPTER_TAG)))


def _pick(adapters: List[Any], current_name: Optional[str]) -> Any:
    if not adapters:
        return None
    for adapter in adapters:
        if current_name is not None and attr(adapter, "name") == current_name:
            return adapter
    return adapters[0]


def _adapter_model(raw: Any) -> AdapterModel:
    if not isinstance(raw, dict):
        return EMPTY_ADAPTER

    pipeline = None
    pipelines = as_list(raw.get(PIPELINE_TAG))
    if pipelines:
        # <Pipeline/> without attributes parses to None, which is still a pipeline
        pipeline = pipelines[0] if isinstance(pipelines[0], dict) else {}

    exits: List[Any] = []
    if pipeline:
        exits.extend(as_list(pipeline.get(EXIT_TAG)))
        for wrapper in as_list(pipeline.get(EXITS_TAG)):
            if isinstance(wrapper, dict):
                exits.extend(as_list(wrapper.get(EXIT_TAG)))

    return AdapterModel(
        name=attr(raw, "name") or "",
        receivers=tuple(as_list(raw.get(RECEIVER_TAG))),
        pipeline=pipeline if pipelines else None,
        exits=tuple(exits),
        raw=raw,
    )
