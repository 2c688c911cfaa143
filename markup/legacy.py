"""
markup/legacy.py

Conversion of the old generic-element syntax to the current one.

Old configurations name every stage ``<pipe className="pkg.XsltPipe">`` and
every listener ``<listener className="pkg.JavaListener"/>``, wrap exits in an
``<Exits>`` block at the top of the pipeline and use ``<ibis>`` as the root.
The current syntax uses one tag per kind (``<XsltPipe>``), capitalized tag
names, exits at the end of the pipeline and a ``<Configuration>`` root.
"""

from __future__ import annotations

import re

from debug_trace import trace
from models import STAGE_SUFFIX

_LEGACY_STAGE_RE = re.compile(r"<pipe\s[^>]*?/>|<pipe\s.*?>.*?</pipe>", re.S)
_LEGACY_LISTENER_RE = re.compile(r"<listener\s[^>]*?className=\"[^\"]*\"[^>]*?/>", re.S)
_CLASS_NAME_RE = re.compile(r'\s*className="([^"]*)"')
_TAG_START_RE = re.compile(r"<(/?)([a-z])")
_EXITS_RE = re.compile(r"[ \t]*<Exits>(.*?)</Exits>[ \t]*\n?", re.S)
_PIPELINE_CLOSE_RE = re.compile(r"([ \t]*)</Pipeline>")


def is_legacy_syntax(text: str) -> bool:
    """Return True when the text still uses ``<pipe className=...>`` stages."""
    return _LEGACY_STAGE_RE.search(text) is not None


def class_tag(class_name: str, suffix: str = "") -> str:
    """Last dotted segment of a class name, with ``suffix`` appended when missing.

    >>> class_tag("nl.nn.adapterframework.pipes.XsltPipe", "Pipe")
    'XsltPipe'
    """
    tag = class_name.rsplit(".", 1)[-1]
    if suffix and suffix not in tag:
        tag += suffix
    return tag


def to_current_syntax(text: str) -> str:
    """Rewrite old-syntax markup into the current syntax.

    Text that does not use the old stage syntax is returned unchanged.
    """
    if not is_legacy_syntax(text):
        return text
    trace("converting legacy stage syntax", "SYNC")

    def convert_stage(m: re.Match) -> str:
        block = m.group(0)
        class_match = _CLASS_NAME_RE.search(block)
        if class_match is None:
            return block
        tag = class_tag(class_match.group(1), STAGE_SUFFIX)
        block = _CLASS_NAME_RE.sub("", block)
        block = "<" + tag + block[len("<pipe"):]
        if not block.endswith("</pipe>"):
            return block
        return block[: -len("</pipe>")] + "</" + tag + ">"

    def convert_listener(m: re.Match) -> str:
        block = m.group(0)
        tag = class_tag(_CLASS_NAME_RE.search(block).group(1))
        block = _CLASS_NAME_RE.sub("", block)
        return "<" + tag + block[len("<listener"):]

    text = _LEGACY_STAGE_RE.sub(convert_stage, text)
    text = _LEGACY_LISTENER_RE.sub(convert_listener, text)
    text = _TAG_START_RE.sub(lambda m: "<" + m.group(1) + m.group(2).upper(), text)
    text = _move_exits(text)
    text = _CLASS_NAME_RE.sub("", text)
    return text.replace("<Ibis>", "<Configuration>").replace("</Ibis>", "</Configuration>")


def _move_exits(text: str) -> str:
    """Move the content of each ``<Exits>`` block to the end of its pipeline."""
    pieces = []
    pos = 0
    for exits in _EXITS_RE.finditer(text):
        close = _PIPELINE_CLOSE_RE.search(text, exits.end())
        if close is None:
            break
        lines = [line.strip() for line in exits.group(1).splitlines() if line.strip()]
        indent = close.group(1) + "\t"
        moved = "".join(indent + line + "\n" for line in lines)
        pieces.append(text[pos:exits.start()])
        pieces.append(text[exits.end():close.start()])
        pieces.append(moved)
        pos = close.start()
    pieces.append(text[pos:])
    return "".join(pieces)
