"""
models.py

Data models and constants for the PipeSync editor core.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple


# ----------------------------
# Markup vocabulary
# ----------------------------

# Every stage element (``XsltPipe``, ``FixedResultPipe``, ...) is folded into
# this key by the tree builder so that document order survives across kinds.
STAGE_KEY = "pipe"

STAGE_SUFFIX = "Pipe"

ADAPTER_TAG = "Adapter"
MODULE_TAG = "Module"
RECEIVER_TAG = "Receiver"
PIPELINE_TAG = "Pipeline"
EXIT_TAG = "Exit"
EXITS_TAG = "Exits"
FORWARD_TAG = "Forward"
PARAM_TAG = "Param"
DOCUMENTATION_TAG = "Documentation"

RECEIVER_PREFIX = "(receiver): "

LABEL_SUCCESS = "success"
LABEL_REQUEST = "request"


def is_stage_tag(tag: str) -> bool:
    """Return True for element names that denote a pipeline stage."""
    return len(tag) > len(STAGE_SUFFIX) and tag.endswith(STAGE_SUFFIX)


def stage_alias(tag: str) -> str:
    """Tag alias used when building the pipeline tree."""
    return STAGE_KEY if is_stage_tag(tag) else tag


def receiver_label(name: str) -> str:
    """Node name of a synthesized receiver; cannot collide with a stage name."""
    return f"{RECEIVER_PREFIX}{name}"


# ----------------------------
# Mode / state constants
# ----------------------------

class LayoutMode:
    """Fallback layout directions."""
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class SyncState:
    """Orchestrator states."""
    IDLE = "idle"
    MUTATING = "mutating"
    ERROR = "error"


# ----------------------------
# Adapter model
# ----------------------------

@dataclass(frozen=True)
class AdapterModel:
    """The adapter subtree selected for editing.

    ``receivers`` and ``exits`` are always lists; ``pipeline`` is the
    pipeline mapping or ``None`` when the adapter has none.
    """
    name: str = ""
    receivers: Tuple[Any, ...] = ()
    pipeline: Optional[Dict[str, Any]] = None
    exits: Tuple[Any, ...] = ()
    raw: Any = None

    @property
    def is_empty(self) -> bool:
        return self.raw is None


EMPTY_ADAPTER = AdapterModel()


# ----------------------------
# Graph model
# ----------------------------

@dataclass(frozen=True)
class FlowNode:
    """A diagram node: stage, exit or synthesized receiver."""
    name: str
    kind: str = STAGE_KEY
    x: Optional[int] = None
    y: Optional[int] = None
    preview: str = ""
    description: Optional[str] = None
    is_exit: bool = False
    is_receiver: bool = False

    @property
    def has_position(self) -> bool:
        return self.x is not None and self.y is not None

    def moved_to(self, x: int, y: int) -> "FlowNode":
        return replace(self, x=x, y=y)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FlowEdge:
    """A directed forward between two node names."""
    source: str
    target: str
    label: str = LABEL_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FlowGraph:
    """Nodes and edges of one adapter, rebuilt on every text change."""
    adapter_name: str = ""
    nodes: List[FlowNode] = field(default_factory=list)
    edges: List[FlowEdge] = field(default_factory=list)

    def node(self, name: str) -> Optional[FlowNode]:
        for n in self.nodes:
            if n.name == name:
                return n
        return None

    def has_edge(self, source: str, target: str) -> bool:
        return any(e.source == source and e.target == target for e in self.edges)


@dataclass(frozen=True)
class NoDiagram:
    """Signal that the adapter cannot be drawn (distinct from an empty graph)."""
    reason: str = "no pipeline"


# ----------------------------
# Layout model
# ----------------------------

@dataclass(frozen=True)
class CanvasExtent:
    """Tracked size of the drawing surface; only ever grows."""
    width: int = 2000
    height: int = 2000

    def to_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class Placement:
    """A proposed coordinate for one node."""
    name: str
    x: int
    y: int
    is_exit: bool = False


@dataclass
class LayoutPlan:
    """Result of ``compute_layout``: placements to commit and the new extent."""
    placements: List[Placement] = field(default_factory=list)
    extent: CanvasExtent = field(default_factory=CanvasExtent)

    @property
    def is_empty(self) -> bool:
        return not self.placements


@dataclass
class DiagramView:
    """Render payload handed to the diagram toolkit."""
    adapter_name: str = ""
    nodes: List[FlowNode] = field(default_factory=list)
    edges: List[FlowEdge] = field(default_factory=list)
    canvas_extent: CanvasExtent = field(default_factory=CanvasExtent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "adapter": self.adapter_name,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "canvas_extent": self.canvas_extent.to_dict(),
        }


# ----------------------------
# Reference data
# ----------------------------

@dataclass(frozen=True)
class StageKind:
    """One entry of the stage catalog (palette)."""
    name: str
    package_name: str = ""
    label: str = ""


@dataclass(frozen=True)
class SavedConfiguration:
    """An adapter document retrieved from the saved-configuration list."""
    name: str
    text: str


# ----------------------------
# Editor session
# ----------------------------

@dataclass
class EditorSession:
    """Everything the sync loop needs, passed explicitly to each component.

    Attributes:
        raw_text: The authoritative markup text.
        selected_adapter_name: Adapter currently shown in the diagram.
        cached_schema: Schema text, or None when not available.
        cached_catalog: Stage kinds known to the palette.
        saved_configurations: Adapter documents offered for loading.
        layout_mode: Fallback layout direction.
        canvas_extent: Tracked drawing surface size.
    """
    raw_text: str = ""
    selected_adapter_name: Optional[str] = None
    cached_schema: Optional[str] = None
    cached_catalog: List[StageKind] = field(default_factory=list)
    saved_configurations: List[SavedConfiguration] = field(default_factory=list)
    layout_mode: str = LayoutMode.VERTICAL
    canvas_extent: CanvasExtent = field(default_factory=CanvasExtent)
