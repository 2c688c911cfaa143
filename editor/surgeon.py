"""
editor/surgeon.py

Structural edits performed directly on the markup text.

Every edit locates its element with the span scanner, scoped to the current
adapter (the one named ``adapter_name``, else the first), and replaces only
the characters that change.  Everything else in the document is preserved
byte-for-byte, including formatting, comments and other adapters.

An edit whose anchor cannot be located returns the input text unchanged;
callers detect failure by comparing the result with the input.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple, Union

from debug_trace import trace
from markup.spans import (
    ElementSpan,
    MarkupSpans,
    TextPatch,
    apply_patches,
    exit_name,
    exits_of,
    find_adapter,
    find_exit,
    find_receiver,
    find_stage,
    indentation,
    line_bounds,
    pipeline_of,
    removal_patch,
    scan,
)
from models import (
    EXITS_TAG,
    FORWARD_TAG,
    LABEL_SUCCESS,
    PARAM_TAG,
    RECEIVER_PREFIX,
)
from utils import escape_attr_value, parse_coordinate

Coordinate = Union[int, float, str]

# Attributes holding diagram positions
LAYOUT_ATTRIBUTES = ("x", "y")

_EXIT_TARGET = "exit"


# ─────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────


def _adapter(text: str, adapter_name: Optional[str]) -> Tuple[MarkupSpans, Optional[ElementSpan]]:
    spans = scan(text)
    adapter = find_adapter(spans, adapter_name)
    if adapter is None:
        trace("no adapter in text", "SURGERY")
    return spans, adapter


def _stage(text: str, name: str, adapter_name: Optional[str]) -> Optional[ElementSpan]:
    _, adapter = _adapter(text, adapter_name)
    if adapter is None:
        return None
    stage = find_stage(adapter, name)
    if stage is None:
        trace(f"stage {name!r} not found", "SURGERY")
    return stage


def _attribute_patches(element: ElementSpan, values: Dict[str, str]) -> List[TextPatch]:
    """Update attributes in place, appending the missing ones after the last attribute."""
    patches = []
    appended = ""
    for name, value in values.items():
        escaped = escape_attr_value(value)
        span = element.attrs.get(name)
        if span is not None:
            patches.append(TextPatch(span.value_start, span.value_end, escaped))
        else:
            appended += f' {name}="{escaped}"'
    if appended:
        patches.append(TextPatch(element.attrs_end, element.attrs_end, appended))
    return patches


def _attribute_removal(text: str, element: ElementSpan, name: str) -> Optional[TextPatch]:
    span = element.attrs.get(name)
    if span is None:
        return None
    start = span.start
    while start > element.start and text[start - 1].isspace():
        start -= 1
    return TextPatch(start, span.end)


def _child_indent(text: str, element: ElementSpan) -> str:
    if element.children:
        return indentation(text, element.children[0].start)
    indent = indentation(text, element.start)
    unit = "\t"
    if element.parent is not None:
        # reuse the document's own indent step
        parent_indent = indentation(text, element.parent.start)
        if len(indent) > len(parent_indent) and indent.startswith(parent_indent):
            unit = indent[len(parent_indent):]
    return indent + unit


def _append_child(text: str, element: ElementSpan, markup: str) -> TextPatch:
    """Patch adding ``markup`` on its own line as the last child of ``element``."""
    indent = indentation(text, element.start)
    child_indent = _child_indent(text, element)

    if element.self_closing:
        return TextPatch(
            element.attrs_end,
            element.open_end,
            f">\n{child_indent}{markup}\n{indent}</{element.tag}>",
        )

    close = element.content_end
    line_start, _ = line_bounds(text, close)
    if not text[line_start:close].strip():
        return TextPatch(line_start, line_start, f"{child_indent}{markup}\n")
    return TextPatch(close, close, f"\n{child_indent}{markup}\n{indent}")


def _forward_target(forward: ElementSpan) -> Optional[str]:
    return forward.get("path", forward.get("name"))


# ─────────────────────────────────────────────────────────
# Diagram edits
# ─────────────────────────────────────────────────────────


def rename(text: str, old: str, new: str, adapter_name: Optional[str] = None) -> str:
    """Rename a stage and every reference to it inside the adapter.

    Updates the stage's ``name``, every ``<Forward path="old">`` in the
    adapter and a ``firstPipe="old"`` on the pipeline.
    """
    _, adapter = _adapter(text, adapter_name)
    if adapter is None:
        return text
    stage = find_stage(adapter, old)
    if stage is None:
        trace(f"rename: stage {old!r} not found", "SURGERY")
        return text

    patches = _attribute_patches(stage, {"name": new})
    for element in adapter.iter():
        if element.tag == FORWARD_TAG and element.get("path") == old:
            patches.extend(_attribute_patches(element, {"path": new}))

    pipeline = pipeline_of(adapter)
    if pipeline is not None and pipeline.get("firstPipe") == old:
        patches.extend(_attribute_patches(pipeline, {"firstPipe": new}))

    trace(f"rename {old!r} -> {new!r}: {len(patches)} patches", "SURGERY")
    return apply_patches(text, patches)


def move(
    text: str,
    name: str,
    x: Coordinate,
    y: Coordinate,
    adapter_name: Optional[str] = None,
) -> str:
    """Store a stage position; ``(receiver): <name>`` moves the receiver."""
    px, py = parse_coordinate(x), parse_coordinate(y)
    if px is None or py is None:
        trace(f"move {name!r}: bad coordinates {x!r}, {y!r}", "SURGERY")
        return text
    _, adapter = _adapter(text, adapter_name)
    if adapter is None:
        return text

    if name.startswith(RECEIVER_PREFIX):
        element = find_receiver(adapter, name[len(RECEIVER_PREFIX):])
    else:
        element = find_stage(adapter, name)
    if element is None:
        trace(f"move: {name!r} not found", "SURGERY")
        return text
    return apply_patches(text, _attribute_patches(element, {"x": str(px), "y": str(py)}))


def move_exit(
    text: str,
    name: str,
    x: Coordinate,
    y: Coordinate,
    adapter_name: Optional[str] = None,
) -> str:
    """Store the position of the exit whose path is ``name``."""
    px, py = parse_coordinate(x), parse_coordinate(y)
    if px is None or py is None:
        return text
    _, adapter = _adapter(text, adapter_name)
    if adapter is None:
        return text
    element = find_exit(adapter, name)
    if element is None:
        trace(f"move_exit: {name!r} not found", "SURGERY")
        return text
    return apply_patches(text, _attribute_patches(element, {"x": str(px), "y": str(py)}))


def connect(text: str, name: str, target: str, adapter_name: Optional[str] = None) -> str:
    """Add ``<Forward name="success" path="target"/>`` to a stage.

    A stage that already forwards to ``target`` is left unchanged.
    """
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    for forward in stage.children_tagged(FORWARD_TAG):
        if _forward_target(forward) == target:
            return text

    markup = f'<{FORWARD_TAG} name="{LABEL_SUCCESS}" path="{escape_attr_value(target)}"/>'
    return apply_patches(text, [_append_child(text, stage, markup)])


def disconnect(text: str, name: str, target: str, adapter_name: Optional[str] = None) -> str:
    """Remove the stage's forwards to ``target``.

    A target spelled ``exit`` in any case matches case-insensitively.
    """
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text

    if target.lower() == _EXIT_TARGET:
        def matches(path: Optional[str]) -> bool:
            return path is not None and path.lower() == _EXIT_TARGET
    else:
        def matches(path: Optional[str]) -> bool:
            return path == target

    patches = [
        removal_patch(text, forward.start, forward.end)
        for forward in stage.children_tagged(FORWARD_TAG)
        if matches(_forward_target(forward))
    ]
    if not patches:
        trace(f"disconnect: no forward {name!r} -> {target!r}", "SURGERY")
        return text
    return apply_patches(text, patches)


def insert_stage(
    text: str,
    name: str,
    x: Coordinate,
    y: Coordinate,
    kind: str,
    adapter_name: Optional[str] = None,
) -> str:
    """Insert an empty ``<kind name x y>`` block before the adapter's first exit."""
    px, py = parse_coordinate(x), parse_coordinate(y)
    if px is None or py is None:
        return text
    _, adapter = _adapter(text, adapter_name)
    if adapter is None:
        return text
    exits = exits_of(adapter)
    if not exits:
        trace("insert_stage: adapter has no exit", "SURGERY")
        return text

    anchor = exits[0]
    if anchor.parent is not None and anchor.parent.tag == EXITS_TAG:
        anchor = anchor.parent

    indent = indentation(text, anchor.start)
    block = (
        f'<{kind} name="{escape_attr_value(name)}" x="{px}" y="{py}">\n'
        f"\n"
        f"{indent}</{kind}>"
    )
    line_start, _ = line_bounds(text, anchor.start)
    if not text[line_start:anchor.start].strip():
        patch = TextPatch(line_start, line_start, f"{indent}{block}\n")
    else:
        patch = TextPatch(anchor.start, anchor.start, f"{block}\n{indent}")
    return apply_patches(text, [patch])


# ─────────────────────────────────────────────────────────
# Stage editing
# ─────────────────────────────────────────────────────────


def delete_stage(text: str, name: str, adapter_name: Optional[str] = None) -> str:
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    return apply_patches(text, [removal_patch(text, stage.start, stage.end)])


def change_kind(text: str, name: str, new_kind: str, adapter_name: Optional[str] = None) -> str:
    """Change the element name of a stage (open and close tag)."""
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    patches = [TextPatch(stage.start + 1, stage.start + 1 + len(stage.tag), new_kind)]
    if stage.close_start is not None:
        start = stage.close_start + 2
        patches.append(TextPatch(start, start + len(stage.tag), new_kind))
    return apply_patches(text, patches)


def get_attributes(text: str, name: str, adapter_name: Optional[str] = None) -> Dict[str, str]:
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return {}
    return {attr_name: span.value for attr_name, span in stage.attrs.items()}


def set_attribute(
    text: str,
    name: str,
    attribute: str,
    value: str,
    adapter_name: Optional[str] = None,
) -> str:
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    return apply_patches(text, _attribute_patches(stage, {attribute: value}))


def delete_attribute(text: str, name: str, attribute: str, adapter_name: Optional[str] = None) -> str:
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    patch = _attribute_removal(text, stage, attribute)
    if patch is None:
        return text
    return apply_patches(text, [patch])


def _parameter(stage: ElementSpan, param: str) -> Optional[ElementSpan]:
    for element in stage.children_tagged(PARAM_TAG):
        if element.get("name") == param:
            return element
    return None


def get_parameters(text: str, name: str, adapter_name: Optional[str] = None) -> List[Dict[str, str]]:
    """Attributes of each ``<Param>`` of a stage, in document order."""
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return []
    return [
        {attr_name: span.value for attr_name, span in element.attrs.items()}
        for element in stage.children_tagged(PARAM_TAG)
    ]


def add_parameter(text: str, name: str, param: str, adapter_name: Optional[str] = None) -> str:
    """Add ``<Param name="param"/>`` after the stage's last parameter."""
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    markup = f'<{PARAM_TAG} name="{escape_attr_value(param)}"/>'
    params = stage.children_tagged(PARAM_TAG)
    if params:
        last = params[-1]
        patch = TextPatch(last.end, last.end, f"\n{indentation(text, last.start)}{markup}")
    else:
        patch = _append_child(text, stage, markup)
    return apply_patches(text, [patch])


def set_parameter_attribute(
    text: str,
    name: str,
    param: str,
    attribute: str,
    value: str,
    adapter_name: Optional[str] = None,
) -> str:
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    element = _parameter(stage, param)
    if element is None:
        return text
    return apply_patches(text, _attribute_patches(element, {attribute: value}))


def delete_parameter(text: str, name: str, param: str, adapter_name: Optional[str] = None) -> str:
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return text
    element = _parameter(stage, param)
    if element is None:
        return text
    return apply_patches(text, [removal_patch(text, element.start, element.end)])


def locate_stage(text: str, name: str, adapter_name: Optional[str] = None) -> Optional[Tuple[int, int]]:
    """Character range ``(start, end)`` of a stage block, for highlighting."""
    stage = _stage(text, name, adapter_name)
    if stage is None:
        return None
    return stage.start, stage.end


def strip_layout(text: str) -> str:
    """Remove every ``x``/``y`` attribute, e.g. before handing text to a validator."""
    patches = []
    for element in scan(text).iter():
        for attribute in LAYOUT_ATTRIBUTES:
            patch = _attribute_removal(text, element, attribute)
            if patch is not None:
                patches.append(patch)
    return apply_patches(text, patches)


def exit_names(text: str, adapter_name: Optional[str] = None) -> List[str]:
    """Exit paths of the adapter in document order."""
    _, adapter = _adapter(text, adapter_name)
    if adapter is None:
        return []
    return [n for n in (exit_name(e) for e in exits_of(adapter)) if n is not None]
