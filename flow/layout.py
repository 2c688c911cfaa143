"""
flow/layout.py

Fallback placement for nodes that carry no coordinates.

Layout is two-phase.  ``compute_layout`` is pure: it walks the stages and
exits (1-based index ``i``, receivers excluded) and proposes a coordinate
for every node without one, stacking them ``step * i`` apart along the
chosen direction in a fixed band.  ``commit_layout`` writes the proposals
into the markup text, so the next rebuild finds every node placed and the
layout converges after a single pass.

The canvas extent grows with the number of nodes and never shrinks.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from debug_trace import trace
from models import (
    CanvasExtent,
    FlowGraph,
    FlowNode,
    LayoutMode,
    LayoutPlan,
    Placement,
)
from settings import LayoutSettings


def _slot(index: int, mode: str, settings: LayoutSettings) -> Tuple[int, int]:
    offset = settings.step * index
    if mode == LayoutMode.HORIZONTAL:
        return offset, settings.band
    return settings.band, offset


def _grow(extent: CanvasExtent, index: int, mode: str, settings: LayoutSettings) -> CanvasExtent:
    offset = settings.step * index
    if mode == LayoutMode.HORIZONTAL:
        width = offset + settings.node_extent * index - settings.horizontal_margin
        if width > extent.width:
            return replace(extent, width=width)
    else:
        height = offset + settings.node_extent * index - settings.vertical_margin
        if height > extent.height:
            return replace(extent, height=height)
    return extent


def _placeable(nodes: Sequence[FlowNode]) -> List[FlowNode]:
    # stages first, then exits; receivers always have a position
    stages = [n for n in nodes if not n.is_exit and not n.is_receiver]
    exits = [n for n in nodes if n.is_exit]
    return stages + exits


def compute_layout(
    graph: FlowGraph,
    mode: str,
    extent: CanvasExtent,
    settings: Optional[LayoutSettings] = None,
    replace_all: bool = False,
) -> LayoutPlan:
    """Propose coordinates for uncoordinated nodes.

    Args:
        graph: The graph built for the current adapter.
        mode: ``LayoutMode.VERTICAL`` or ``LayoutMode.HORIZONTAL``.
        extent: Current canvas extent.
        settings: Step, band and extent constants.
        replace_all: Place every stage and exit, even those with coordinates.

    Returns:
        The placements to commit and the grown extent.
    """
    settings = settings or LayoutSettings()
    plan = LayoutPlan(extent=extent)
    for index, node in enumerate(_placeable(graph.nodes), start=1):
        plan.extent = _grow(plan.extent, index, mode, settings)
        if node.has_position and not replace_all:
            continue
        x, y = _slot(index, mode, settings)
        trace(f"place {node.name!r} at ({x}, {y})", "LAYOUT")
        plan.placements.append(Placement(node.name, x, y, is_exit=node.is_exit))
    return plan


def realign(
    graph: FlowGraph,
    mode: str,
    extent: CanvasExtent,
    settings: Optional[LayoutSettings] = None,
) -> LayoutPlan:
    """Plan that re-places every stage and exit regardless of coordinates."""
    return compute_layout(graph, mode, extent, settings, replace_all=True)


def assign_layout(
    nodes: Sequence[FlowNode],
    mode: str,
    extent: CanvasExtent,
    settings: Optional[LayoutSettings] = None,
) -> Tuple[List[FlowNode], CanvasExtent]:
    """Return node copies with fallback coordinates filled in, plus the extent."""
    plan = compute_layout(FlowGraph(nodes=list(nodes)), mode, extent, settings)
    placed = {(p.name, p.is_exit): p for p in plan.placements}
    result = []
    for node in nodes:
        p = placed.get((node.name, node.is_exit))
        result.append(node.moved_to(p.x, p.y) if p is not None and not node.is_receiver else node)
    return result, plan.extent


def commit_layout(text: str, plan: LayoutPlan, adapter_name: Optional[str] = None) -> str:
    """Write the plan's placements into the markup text.

    Stages are moved with ``surgeon.move`` and exits with
    ``surgeon.move_exit``; a placement whose element cannot be located
    leaves the text unchanged.
    """
    from editor import surgeon

    for p in plan.placements:
        if p.is_exit:
            text = surgeon.move_exit(text, p.name, p.x, p.y, adapter_name=adapter_name)
        else:
            text = surgeon.move(text, p.name, p.x, p.y, adapter_name=adapter_name)
    trace(f"committed {len(plan.placements)} placements", "LAYOUT")
    return text
