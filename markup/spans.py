"""
markup/spans.py

Position-aware markup scan.

``scan`` walks the raw text once and records, for every element, the
character offsets of its open tag, its attributes (name and value) and its
close tag.  Structural edits are expressed as :class:`TextPatch` objects over
those offsets and applied in one pass by :func:`apply_patches`, so text
outside the patched ranges is preserved byte-for-byte.

The scanner is lenient: malformed tags are skipped, stray close tags are
ignored and elements left open run to the end of the text.  This keeps
surgery usable on documents the strict parser would reject.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from xml.sax.saxutils import unescape as _unescape_entities

from models import (
    ADAPTER_TAG,
    EXIT_TAG,
    EXITS_TAG,
    PIPELINE_TAG,
    RECEIVER_TAG,
    is_stage_tag,
)

_TOKEN_RE = re.compile(
    r"""
    (?P<skip>
        <!--.*?-->
      | <!\[CDATA\[.*?\]\]>
      | <\?.*?\?>
      | <!DOCTYPE(?:[^>\[]|\[.*?\])*>
    )
  | </(?P<close>[^\s<>/]+)\s*>
  | <(?P<open>[^\s<>/!?]+)
     (?P<attrs>(?:\s+[^\s<>/=]+\s*=\s*(?:"[^"]*"|'[^']*'))*)
     \s*(?P<empty>/?)>
    """,
    re.S | re.X,
)

_ATTR_RE = re.compile(r"""([^\s<>/=]+)\s*=\s*("([^"]*)"|'([^']*)')""")

_ENTITIES = {"&quot;": '"', "&apos;": "'"}


# ─────────────────────────────────────────────────────────
# Span types
# ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AttrSpan:
    """One attribute of an open tag.

    Attributes:
        name: Attribute name as written.
        value: Entity-decoded value.
        start: Offset of the first character of the name.
        end: Offset just past the closing quote.
        value_start: Offset of the first character inside the quotes.
        value_end: Offset of the closing quote.
    """
    name: str
    value: str
    start: int
    end: int
    value_start: int
    value_end: int


@dataclass(eq=False)
class ElementSpan:
    """Offsets of one element.

    ``start`` is the ``<`` of the open tag and ``open_end`` is just past its
    ``>``.  ``attrs_end`` is just past the last attribute (or the tag name),
    which is where new attributes go.  For a closed element ``close_start``
    is the ``<`` of ``</tag>`` and ``end`` is just past it; self-closing
    elements have ``end == open_end``.
    """
    tag: str
    start: int
    open_end: int
    attrs_end: int
    end: int = -1
    close_start: Optional[int] = None
    self_closing: bool = False
    attrs: Dict[str, AttrSpan] = field(default_factory=dict)
    parent: Optional["ElementSpan"] = field(default=None, repr=False)
    children: List["ElementSpan"] = field(default_factory=list, repr=False)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        span = self.attrs.get(name)
        return span.value if span is not None else default

    def children_tagged(self, tag: str) -> List["ElementSpan"]:
        return [c for c in self.children if c.tag == tag]

    def child(self, tag: str) -> Optional["ElementSpan"]:
        for c in self.children:
            if c.tag == tag:
                return c
        return None

    def iter(self) -> Iterator["ElementSpan"]:
        """Yield this element and all descendants in document order."""
        yield self
        for c in self.children:
            yield from c.iter()

    @property
    def content_end(self) -> int:
        """Offset where new children are inserted (before the close tag)."""
        if self.close_start is not None:
            return self.close_start
        return self.end


@dataclass
class MarkupSpans:
    """Result of :func:`scan`: the text and its top-level elements."""
    text: str
    roots: List[ElementSpan] = field(default_factory=list)

    def iter(self) -> Iterator[ElementSpan]:
        for root in self.roots:
            yield from root.iter()


@dataclass(frozen=True)
class TextPatch:
    """Replace ``text[start:end]`` with ``replacement`` (insert when equal)."""
    start: int
    end: int
    replacement: str = ""


# ─────────────────────────────────────────────────────────
# Scanning
# ─────────────────────────────────────────────────────────


def scan(text: str) -> MarkupSpans:
    """Scan markup text into element spans."""
    result = MarkupSpans(text=text)
    stack: List[ElementSpan] = []

    for m in _TOKEN_RE.finditer(text):
        if m.group("skip"):
            continue

        close = m.group("close")
        if close is not None:
            for depth in range(len(stack) - 1, -1, -1):
                if stack[depth].tag == close:
                    break
            else:
                continue
            while len(stack) > depth + 1:
                stack.pop().end = m.start()
            element = stack.pop()
            element.close_start = m.start()
            element.end = m.end()
            continue

        parent = stack[-1] if stack else None
        element = ElementSpan(
            tag=m.group("open"),
            start=m.start(),
            open_end=m.end(),
            attrs_end=m.end("open"),
            self_closing=bool(m.group("empty")),
            parent=parent,
        )
        base = m.start("attrs")
        for a in _ATTR_RE.finditer(m.group("attrs")):
            raw = a.group(3) if a.group(3) is not None else a.group(4)
            span = AttrSpan(
                name=a.group(1),
                value=_unescape_entities(raw, _ENTITIES),
                start=base + a.start(1),
                end=base + a.end(2),
                value_start=base + a.start(2) + 1,
                value_end=base + a.end(2) - 1,
            )
            element.attrs.setdefault(span.name, span)
            element.attrs_end = span.end

        if parent is not None:
            parent.children.append(element)
        else:
            result.roots.append(element)

        if element.self_closing:
            element.end = element.open_end
        else:
            stack.append(element)

    for element in stack:
        element.end = len(text)
    return result


# ─────────────────────────────────────────────────────────
# Patching
# ─────────────────────────────────────────────────────────


def apply_patches(text: str, patches: Iterable[TextPatch]) -> str:
    """Apply non-overlapping patches in one pass.

    Patches are ordered by position; inserts at the same offset keep the
    order they were given in.

    Raises:
        ValueError: If two patches overlap.
    """
    ordered = sorted(patches, key=lambda p: (p.start, p.end))
    pieces: List[str] = []
    pos = 0
    for patch in ordered:
        if patch.start < pos:
            raise ValueError(f"overlapping patch at {patch.start}")
        pieces.append(text[pos:patch.start])
        pieces.append(patch.replacement)
        pos = patch.end
    pieces.append(text[pos:])
    return "".join(pieces)


def line_bounds(text: str, pos: int) -> Tuple[int, int]:
    """Return (start, end) of the line holding ``pos``; end excludes the newline."""
    start = text.rfind("\n", 0, pos) + 1
    end = text.find("\n", pos)
    if end == -1:
        end = len(text)
    return start, end


def indentation(text: str, pos: int) -> str:
    """Leading whitespace of the line holding ``pos``."""
    start, end = line_bounds(text, pos)
    line = text[start:end]
    return line[: len(line) - len(line.lstrip(" \t"))]


def removal_patch(text: str, start: int, end: int) -> TextPatch:
    """Patch removing ``text[start:end]``, together with its line if nothing else is on it."""
    line_start, _ = line_bounds(text, start)
    _, line_end = line_bounds(text, end)
    if not text[line_start:start].strip() and not text[end:line_end].strip():
        if line_end < len(text):
            return TextPatch(line_start, line_end + 1)
        return TextPatch(line_start, line_end)
    return TextPatch(start, end)


# ─────────────────────────────────────────────────────────
# Adapter structure
# ─────────────────────────────────────────────────────────


def find_adapter(spans: MarkupSpans, name: Optional[str] = None) -> Optional[ElementSpan]:
    """Adapter named ``name``, else the first adapter in the document."""
    adapters = [e for e in spans.iter() if e.tag == ADAPTER_TAG]
    if not adapters:
        return None
    if name is not None:
        for adapter in adapters:
            if adapter.get("name") == name:
                return adapter
    return adapters[0]


def pipeline_of(adapter: ElementSpan) -> Optional[ElementSpan]:
    return adapter.child(PIPELINE_TAG)


def stages_of(adapter: ElementSpan) -> List[ElementSpan]:
    pipeline = pipeline_of(adapter)
    if pipeline is None:
        return []
    return [c for c in pipeline.children if is_stage_tag(c.tag)]


def exits_of(adapter: ElementSpan) -> List[ElementSpan]:
    """Exit elements of the adapter, including those in an ``<Exits>`` wrapper."""
    pipeline = pipeline_of(adapter)
    if pipeline is None:
        return []
    exits = []
    for c in pipeline.children:
        if c.tag == EXIT_TAG:
            exits.append(c)
        elif c.tag == EXITS_TAG:
            exits.extend(c.children_tagged(EXIT_TAG))
    return sorted(exits, key=lambda e: e.start)


def receivers_of(adapter: ElementSpan) -> List[ElementSpan]:
    return adapter.children_tagged(RECEIVER_TAG)


def find_stage(adapter: ElementSpan, name: str) -> Optional[ElementSpan]:
    for stage in stages_of(adapter):
        if stage.get("name") == name:
            return stage
    return None


def exit_name(exit_span: ElementSpan) -> Optional[str]:
    """Identity of an exit: its path, or its name when it has no path."""
    return exit_span.get("path", exit_span.get("name"))


def find_exit(adapter: ElementSpan, path: str) -> Optional[ElementSpan]:
    for exit_span in exits_of(adapter):
        if exit_name(exit_span) == path:
            return exit_span
    return None


def find_receiver(adapter: ElementSpan, name: str) -> Optional[ElementSpan]:
    for receiver in receivers_of(adapter):
        if receiver.get("name") == name:
            return receiver
    return None
