"""
flow package

Flow diagram construction (nodes, forwards, inferred edges) and fallback
layout for uncoordinated nodes.
"""

from flow.graph import build_graph, collapse_edges, infer_edges, to_view
from flow.layout import assign_layout, commit_layout, compute_layout, realign

__all__ = [
    "build_graph",
    "collapse_edges",
    "infer_edges",
    "to_view",
    "assign_layout",
    "commit_layout",
    "compute_layout",
    "realign",
]
