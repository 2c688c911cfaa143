"""
editor/sync.py

Two-way synchronization between the markup text and the flow diagram.

``FlowSynchronizer`` owns the :class:`models.EditorSession`.  Text edits are
debounced and rebuild the diagram (parse, select adapter, build graph,
layout).  Diagram edits are turned into text surgery, pushed to the editor
widget through ``text_changed`` and rebuilt immediately.

While a surgeon edit is being pushed the synchronizer is ``MUTATING``: the
editor widget's echo of our own text and any diagram event raised by the
refresh are ignored, so one edit never triggers another.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Union
from xml.parsers.expat import ExpatError

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from catalog import kind_label, parse_stage_catalog, split_configurations
from debug_trace import trace, trace_call
from editor import surgeon
from flow.graph import build_graph, to_view
from flow.layout import assign_layout, commit_layout, compute_layout, realign
from markup.selector import adapter_name_at, select_adapter
from markup.tree import to_tree
from models import (
    CanvasExtent,
    DiagramView,
    EditorSession,
    FlowGraph,
    LayoutMode,
    NoDiagram,
    SyncState,
    stage_alias,
)
from settings import AppSettings, get_settings

Coordinate = Union[int, float, str]


class FlowSynchronizer(QObject):
    """Keeps the markup text and the flow diagram in step.

    Signals:
        text_changed(str): New markup to show in the text editor.
        diagram_changed(object): A :class:`models.DiagramView` to render.
        diagram_cleared(): The text cannot be drawn; clear the diagram.
        error_raised(str): Human-readable reason the diagram was cleared.
        state_changed(str): One of the :class:`models.SyncState` values.
    """

    text_changed = pyqtSignal(str)
    diagram_changed = pyqtSignal(object)
    diagram_cleared = pyqtSignal()
    error_raised = pyqtSignal(str)
    state_changed = pyqtSignal(str)

    def __init__(self, settings: Optional[AppSettings] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._settings = settings if settings is not None else get_settings().settings
        layout = self._settings.layout

        self.session = EditorSession(
            layout_mode=layout.mode,
            canvas_extent=CanvasExtent(layout.canvas_width, layout.canvas_height),
        )
        self._state = SyncState.IDLE
        self._graph: Optional[FlowGraph] = None
        self._view: Optional[DiagramView] = None

        # Debounced text -> diagram rebuild
        self._rebuild_timer = QTimer(self)
        self._rebuild_timer.setSingleShot(True)
        self._rebuild_timer.setInterval(self._settings.sync.debounce_ms)
        self._rebuild_timer.timeout.connect(self.rebuild)

    # ─────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────

    @property
    def state(self) -> str:
        return self._state

    @property
    def text(self) -> str:
        return self.session.raw_text

    @property
    def graph(self) -> Optional[FlowGraph]:
        """Graph of the last successful rebuild (None after an error)."""
        return self._graph

    @property
    def view(self) -> Optional[DiagramView]:
        return self._view

    def _set_state(self, state: str) -> None:
        if state == self._state:
            return
        trace(f"state {self._state} -> {state}", "SYNC")
        self._state = state
        self.state_changed.emit(state)

    def _adapter_name(self) -> Optional[str]:
        if self._graph is not None and self._graph.adapter_name:
            return self._graph.adapter_name
        return self.session.selected_adapter_name

    # ─────────────────────────────────────────────────────────
    # Text -> diagram
    # ─────────────────────────────────────────────────────────

    def set_text(self, text: str) -> None:
        """Handle a text edit; the diagram is rebuilt after the debounce delay."""
        if self._state == SyncState.MUTATING:
            trace("ignoring text echo while mutating", "SYNC")
            return
        self.session.raw_text = text
        self._rebuild_timer.start()

    def rebuild(self) -> Optional[DiagramView]:
        """Rebuild the diagram from the current text now.

        Returns:
            The render payload, or None when the text cannot be drawn.
        """
        self._rebuild_timer.stop()
        return self._rebuild(commit=True)

    @trace_call("REBUILD")
    def _rebuild(self, commit: bool) -> Optional[DiagramView]:
        text = self.session.raw_text
        try:
            tree = to_tree(text, uniform=True, tag_alias=stage_alias)
        except ExpatError as e:
            self._fail(f"Invalid markup: {e}")
            return None

        adapter = select_adapter(tree, self.session.selected_adapter_name)
        graph = build_graph(adapter, self._settings.graph)
        if isinstance(graph, NoDiagram):
            self._fail(graph.reason)
            return None
        self._graph = graph

        mode = self.session.layout_mode
        if commit:
            plan = compute_layout(graph, mode, self.session.canvas_extent, self._settings.layout)
            if not plan.is_empty:
                self.session.canvas_extent = plan.extent
                new_text = commit_layout(text, plan, graph.adapter_name or None)
                if new_text != text:
                    trace(f"layout wrote {len(plan.placements)} positions", "REBUILD")
                    # the re-run settles the state once the diagram is out
                    self._set_state(SyncState.MUTATING)
                    self.session.raw_text = new_text
                    self.text_changed.emit(new_text)
                    return self._rebuild(commit=False)

        nodes, extent = assign_layout(graph.nodes, mode, self.session.canvas_extent, self._settings.layout)
        self.session.canvas_extent = extent
        self._view = to_view(FlowGraph(graph.adapter_name, nodes, graph.edges), extent)
        self.diagram_changed.emit(self._view)
        self._set_state(SyncState.IDLE)
        return self._view

    def _fail(self, reason: str) -> None:
        trace(f"cannot draw: {reason}", "REBUILD")
        self._graph = None
        self._view = None
        self.diagram_cleared.emit()
        self.error_raised.emit(reason)
        self._set_state(SyncState.ERROR)

    def _push_text(self, text: str) -> None:
        """Replace the text and hand it to the editor under the mutation guard."""
        previous = self._state
        self._set_state(SyncState.MUTATING)
        try:
            self.session.raw_text = text
            self.text_changed.emit(text)
        finally:
            self._set_state(previous if previous != SyncState.MUTATING else SyncState.IDLE)

    # ─────────────────────────────────────────────────────────
    # Diagram -> text
    # ─────────────────────────────────────────────────────────

    def _mutate(self, description: str, edit: Callable[[str], str]) -> bool:
        """Apply a surgeon edit, push the new text and rebuild.

        The synchronizer stays ``MUTATING`` until the rebuild has emitted its
        result, so diagram events raised by that refresh are suppressed.

        Returns:
            True when the text changed.
        """
        if self._state == SyncState.MUTATING:
            trace(f"suppressed {description} while mutating", "SYNC")
            return False

        previous = self._state
        before = self.session.raw_text
        self._set_state(SyncState.MUTATING)
        try:
            after = edit(before)
            changed = after != before
            trace(f"{description}: {'applied' if changed else 'no change'}", "SURGERY")
            if changed:
                self.session.raw_text = after
                self.text_changed.emit(after)
                self._rebuild_timer.stop()
                self._rebuild(commit=True)
        finally:
            # rebuild settles IDLE or ERROR; anything else means it never finished
            if self._state == SyncState.MUTATING:
                self._set_state(previous)
        return changed

    def _node_names(self) -> List[str]:
        if self._graph is None:
            return []
        return [n.name for n in self._graph.nodes]

    def rename(self, old: str, new: str) -> bool:
        new = new.strip()
        if not new or new == old:
            return False
        if new in self._node_names():
            trace(f"rename refused: {new!r} is taken", "SYNC")
            return False
        name = self._adapter_name()
        return self._mutate(
            f"rename {old!r} -> {new!r}",
            lambda text: surgeon.rename(text, old, new, adapter_name=name),
        )

    def move(self, node: str, x: Coordinate, y: Coordinate) -> bool:
        name = self._adapter_name()
        return self._mutate(
            f"move {node!r}",
            lambda text: surgeon.move(text, node, x, y, adapter_name=name),
        )

    def move_exit(self, node: str, x: Coordinate, y: Coordinate) -> bool:
        name = self._adapter_name()
        return self._mutate(
            f"move exit {node!r}",
            lambda text: surgeon.move_exit(text, node, x, y, adapter_name=name),
        )

    def connect(self, source: str, target: str) -> bool:
        if self._graph is not None and self._graph.has_edge(source, target):
            trace(f"{source!r} -> {target!r} already connected", "SYNC")
            return False
        name = self._adapter_name()
        return self._mutate(
            f"connect {source!r} -> {target!r}",
            lambda text: surgeon.connect(text, source, target, adapter_name=name),
        )

    def disconnect(self, source: str, target: str) -> bool:
        name = self._adapter_name()
        return self._mutate(
            f"disconnect {source!r} -> {target!r}",
            lambda text: surgeon.disconnect(text, source, target, adapter_name=name),
        )

    def add_stage(self, node: str, x: Coordinate, y: Coordinate, kind: Optional[str] = None) -> bool:
        if not node or node in self._node_names():
            trace(f"add_stage refused: {node!r}", "SYNC")
            return False
        tag = kind_label(kind or self._settings.stages.default_kind)
        name = self._adapter_name()
        return self._mutate(
            f"add {tag} {node!r}",
            lambda text: surgeon.insert_stage(text, node, x, y, tag, adapter_name=name),
        )

    def realign(self) -> bool:
        """Re-place every stage and exit with the fallback layout."""
        if self._graph is None:
            return False
        plan = realign(self._graph, self.session.layout_mode, self.session.canvas_extent, self._settings.layout)
        self.session.canvas_extent = plan.extent
        name = self._adapter_name()
        return self._mutate("realign", lambda text: commit_layout(text, plan, name))

    # ─────────────────────────────────────────────────────────
    # Selection and options
    # ─────────────────────────────────────────────────────────

    def select_adapter(self, name: Optional[str]) -> Optional[DiagramView]:
        self.session.selected_adapter_name = name
        return self.rebuild()

    def select_adapter_at(self, offset: int) -> Optional[DiagramView]:
        """Show the adapter whose block holds the text cursor."""
        name = adapter_name_at(self.session.raw_text, offset)
        if name is None or name == self.session.selected_adapter_name:
            return None
        return self.select_adapter(name)

    def set_layout_mode(self, mode: str) -> Optional[DiagramView]:
        if mode not in (LayoutMode.VERTICAL, LayoutMode.HORIZONTAL):
            raise ValueError(f"unknown layout mode: {mode!r}")
        self.session.layout_mode = mode
        return self.rebuild()

    def validation_text(self) -> str:
        """Current text without layout attributes, for an external validator."""
        return surgeon.strip_layout(self.session.raw_text)

    # ─────────────────────────────────────────────────────────
    # Reference data
    # ─────────────────────────────────────────────────────────

    def on_schema_loaded(self, schema: Optional[str]) -> None:
        self.session.cached_schema = schema

    def on_catalog_loaded(self, data: Any) -> None:
        self.session.cached_catalog = parse_stage_catalog(data)

    def on_configurations_loaded(self, payload: str) -> None:
        self.session.saved_configurations = split_configurations(payload)

    def load_configuration(self, index: int) -> Optional[DiagramView]:
        """Replace the text with a saved configuration and show its adapter.

        Raises:
            IndexError: If there is no saved configuration at ``index``.
        """
        configuration = self.session.saved_configurations[index]
        self.session.selected_adapter_name = configuration.name or None
        self._push_text(configuration.text)
        return self.rebuild()
