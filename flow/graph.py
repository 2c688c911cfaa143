"""
flow/graph.py

Build the flow diagram (nodes and edges) of one adapter.

Stages become nodes in document order.  Edges come from explicit
``<Forward>`` children; a stage without any forward gets a single
``success`` edge to the stage right after it.  Exits and receivers are added
as flagged nodes, each receiver with a ``request`` edge to the first stage.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from debug_trace import trace
from markup.tree import TAG_KEY, element_text
from models import (
    DOCUMENTATION_TAG,
    EXIT_TAG,
    FORWARD_TAG,
    LABEL_REQUEST,
    LABEL_SUCCESS,
    RECEIVER_TAG,
    STAGE_KEY,
    AdapterModel,
    CanvasExtent,
    DiagramView,
    FlowEdge,
    FlowGraph,
    FlowNode,
    NoDiagram,
    receiver_label,
)
from settings import GraphSettings
from utils import as_list, attr, parse_coordinate, truncate_preview

_QUERY_SENDER_TAG = "FixedQuerySender"


# ─────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────


def build_graph(
    adapter: AdapterModel,
    settings: Optional[GraphSettings] = None,
) -> Union[FlowGraph, NoDiagram]:
    """Build nodes and edges for an adapter.

    Args:
        adapter: The selected adapter.
        settings: Receiver default position and preview length.

    Returns:
        The flow graph, or ``NoDiagram`` when the adapter is missing, has no
        pipeline, or two stages share a name.
    """
    settings = settings or GraphSettings()
    if adapter.is_empty:
        return NoDiagram("no adapter")
    if adapter.pipeline is None:
        return NoDiagram(f"adapter {adapter.name!r} has no pipeline")

    stages = _named_stages(adapter.pipeline)
    seen = set()
    for stage in stages:
        name = attr(stage, "name")
        if name in seen:
            return NoDiagram(f"duplicate stage name {name!r}")
        seen.add(name)

    graph = FlowGraph(adapter_name=adapter.name)
    for index, stage in enumerate(stages):
        graph.nodes.append(_stage_node(stage, settings))
        next_stage = stages[index + 1] if index + 1 < len(stages) else None
        graph.edges.extend(infer_edges(stage, next_stage))

    for exit_entry in adapter.exits:
        node = _exit_node(exit_entry)
        if node is not None:
            graph.nodes.append(node)

    first_stage = attr(stages[0], "name") if stages else None
    for receiver in adapter.receivers:
        node = _receiver_node(receiver, settings)
        graph.nodes.append(node)
        if first_stage is not None:
            graph.edges.append(FlowEdge(node.name, first_stage, LABEL_REQUEST))

    trace(
        f"graph {adapter.name!r}: {len(graph.nodes)} nodes, {len(graph.edges)} edges",
        "REBUILD",
    )
    return graph


def infer_edges(stage: Dict[str, Any], next_stage: Optional[Dict[str, Any]]) -> List[FlowEdge]:
    """Edges leaving one stage.

    One edge per explicit forward (target is the forward's path, or its
    label when the path is missing).  Without any forward, a single
    ``success`` edge to ``next_stage`` when there is one.
    """
    source = attr(stage, "name")
    forwards = as_list(stage.get(FORWARD_TAG))
    if forwards:
        edges = []
        for forward in forwards:
            label = attr(forward, "name")
            path = attr(forward, "path")
            target = path if path is not None else label
            if target is None:
                trace(f"forward without name or path in {source!r}", "REBUILD")
                continue
            edges.append(FlowEdge(source, target, label if label is not None else ""))
        return edges
    if next_stage is not None:
        return [FlowEdge(source, attr(next_stage, "name"), LABEL_SUCCESS)]
    return []


def collapse_edges(edges: Iterable[FlowEdge]) -> List[FlowEdge]:
    """Drop edges whose (source, target) pair was already seen."""
    seen = set()
    result = []
    for edge in edges:
        key = (edge.source, edge.target)
        if key in seen:
            continue
        seen.add(key)
        result.append(edge)
    return result


def to_view(graph: FlowGraph, extent: CanvasExtent) -> DiagramView:
    """Render payload for the diagram toolkit."""
    return DiagramView(
        adapter_name=graph.adapter_name,
        nodes=list(graph.nodes),
        edges=collapse_edges(graph.edges),
        canvas_extent=extent,
    )


# ─────────────────────────────────────────────────────────
# Node construction
# ─────────────────────────────────────────────────────────


def _named_stages(pipeline: Dict[str, Any]) -> List[Dict[str, Any]]:
    stages = []
    for stage in as_list(pipeline.get(STAGE_KEY)):
        if attr(stage, "name") is None:
            trace("skipping stage without a name", "REBUILD")
            continue
        stages.append(stage)
    return stages


def _coordinates(node: Any) -> Tuple[Optional[int], Optional[int]]:
    """Read x/y; a node with only one of them uses it for both."""
    x = parse_coordinate(attr(node, "x"))
    y = parse_coordinate(attr(node, "y"))
    if x is None and y is not None:
        x = y
    elif y is None and x is not None:
        y = x
    return x, y


def stage_preview(stage: Dict[str, Any], length: int) -> str:
    """Short text shown on a stage node, or "" when the stage has none."""
    senders = as_list(stage.get(_QUERY_SENDER_TAG))
    candidates = (
        attr(stage, "xpathExpression"),
        attr(senders[0], "query") if senders else None,
        attr(stage, "styleSheetName"),
        attr(stage, "returnString"),
    )
    for value in candidates:
        if value:
            return truncate_preview(value, length)
    return ""


def _stage_node(stage: Dict[str, Any], settings: GraphSettings) -> FlowNode:
    x, y = _coordinates(stage)
    docs = as_list(stage.get(DOCUMENTATION_TAG))
    return FlowNode(
        name=attr(stage, "name"),
        kind=stage.get(TAG_KEY, STAGE_KEY),
        x=x,
        y=y,
        preview=stage_preview(stage, settings.preview_length),
        description=element_text(docs[0]) if docs else None,
    )


def _exit_node(exit_entry: Any) -> Optional[FlowNode]:
    name = attr(exit_entry, "path")
    if name is None:
        name = attr(exit_entry, "name")
    if name is None:
        trace("skipping exit without a path", "REBUILD")
        return None
    x, y = _coordinates(exit_entry)
    return FlowNode(name=name, kind=EXIT_TAG, x=x, y=y, is_exit=True)


def _receiver_node(receiver: Any, settings: GraphSettings) -> FlowNode:
    x, y = _coordinates(receiver)
    if x is None:
        x, y = settings.receiver_x, settings.receiver_y
    return FlowNode(
        name=receiver_label(attr(receiver, "name") or ""),
        kind=RECEIVER_TAG,
        x=x,
        y=y,
        is_receiver=True,
    )
