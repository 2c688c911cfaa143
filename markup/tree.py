"""
markup/tree.py

Convert markup text into a nested key/value tree.

Element attributes become ``@name`` entries, child elements are keyed by
tag name and repeated siblings are collected into ordered lists.  Text and
CDATA content follow the classic XML-to-JSON rules: a structured element keeps
at most one ``#text`` and one ``#cdata`` entry, anything more mixed collapses
to an escaped string.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Optional
from xml.dom import Node, minidom

TEXT_KEY = "#text"
CDATA_KEY = "#cdata"

# Original tag of an element whose key was rewritten by ``tag_alias``
TAG_KEY = "#tag"

# XML whitespace plus \f and \v
_NON_WHITESPACE = re.compile(r"[^ \f\n\r\t\v]")

# CDATA sections and comments (kept verbatim), or an ampersand that does not
# start a character or entity reference
_AMPERSAND_SCAN = re.compile(
    r"<!\[CDATA\[.*?\]\]>|<!--.*?-->|&(?!(?:#\d+|#x[0-9a-fA-F]+|[A-Za-z_][\w.-]*);)",
    re.S,
)

_UNESCAPE = re.compile(r'\\(["\\nr])')
_UNESCAPE_MAP = {'"': '"', "\\": "\\", "n": "\n", "r": "\r"}


def escape(text: str) -> str:
    """Escape backslash, quote, newline and carriage return."""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def unescape(text: str) -> str:
    """Exact inverse of :func:`escape`."""
    return _UNESCAPE.sub(lambda m: _UNESCAPE_MAP[m.group(1)], text)


def _escape_ampersand(m: re.Match) -> str:
    return "&amp;" if m.group(0) == "&" else m.group(0)


def parse_markup(text: str) -> minidom.Document:
    """Parse markup text into a DOM document.

    Stray ampersands are escaped first so that hand-typed ``a & b`` does not
    make the whole document unparsable.

    Raises:
        xml.parsers.expat.ExpatError: If the text is not well-formed.
    """
    return minidom.parseString(_AMPERSAND_SCAN.sub(_escape_ampersand, text))


def to_tree(
    text: str,
    uniform: bool = False,
    tag_alias: Optional[Callable[[str], str]] = None,
) -> Dict[str, Any]:
    """Convert markup text into a markup tree.

    Args:
        text: Markup document text.
        uniform: When True every child element value is a list, even when the
            element occurs once.
        tag_alias: Optional mapping from tag name to tree key.  Aliased
            elements keep their original tag under ``#tag``.

    Returns:
        ``{root_tag: root_value}``.

    Raises:
        xml.parsers.expat.ExpatError: If the text is not well-formed.
    """
    document = parse_markup(text)
    root = document.documentElement
    try:
        return {root.tagName: _to_obj(root, uniform, tag_alias)}
    finally:
        document.unlink()


def element_text(value: Any) -> Optional[str]:
    """Return the unescaped text of a leaf value or of its ``#text``/``#cdata``."""
    if value is None:
        return None
    if isinstance(value, str):
        return unescape(value)
    if isinstance(value, dict):
        for key in (TEXT_KEY, CDATA_KEY):
            if key in value:
                return unescape(value[key])
    return None


def _inner_markup(node: minidom.Element) -> str:
    return "".join(_outer_markup(child) for child in node.childNodes)


def _outer_markup(node: Node) -> str:
    # text is emitted as parsed, without re-escaping entities
    if node.nodeType == Node.TEXT_NODE:
        return node.data
    if node.nodeType == Node.CDATA_SECTION_NODE:
        return "<![CDATA[" + node.data + "]]>"
    if node.nodeType != Node.ELEMENT_NODE:
        return ""
    attrs = "".join(f' {name}="{value}"' for name, value in node.attributes.items())
    if not node.hasChildNodes():
        return f"<{node.tagName}{attrs}/>"
    return f"<{node.tagName}{attrs}>{_inner_markup(node)}</{node.tagName}>"


def _to_obj(
    node: minidom.Element,
    uniform: bool,
    tag_alias: Optional[Callable[[str], str]],
) -> Any:
    obj: Dict[str, Any] = {}
    has_attributes = bool(node.attributes.length)
    for name, value in node.attributes.items():
        obj["@" + name] = value

    if not node.hasChildNodes():
        return obj if has_attributes else None

    text_count = 0
    cdata_count = 0
    has_element = False
    for child in node.childNodes:
        if child.nodeType == Node.ELEMENT_NODE:
            has_element = True
        elif child.nodeType == Node.TEXT_NODE and _NON_WHITESPACE.search(child.data):
            text_count += 1
        elif child.nodeType == Node.CDATA_SECTION_NODE:
            cdata_count += 1

    if has_element:
        if text_count < 2 and cdata_count < 2:
            for child in node.childNodes:
                if child.nodeType == Node.TEXT_NODE:
                    if _NON_WHITESPACE.search(child.data):
                        obj[TEXT_KEY] = escape(child.data)
                elif child.nodeType == Node.CDATA_SECTION_NODE:
                    obj[CDATA_KEY] = escape(child.data)
                elif child.nodeType == Node.ELEMENT_NODE:
                    _add_child(obj, child, uniform, tag_alias)
            return obj
        # mixed content
        if not has_attributes:
            return escape(_inner_markup(node))
        obj[TEXT_KEY] = escape(_inner_markup(node))
        return obj

    if text_count:
        if not has_attributes:
            return escape(_inner_markup(node))
        obj[TEXT_KEY] = escape(_inner_markup(node))
        return obj

    if cdata_count > 1:
        return escape(_inner_markup(node))
    if cdata_count == 1:
        for child in node.childNodes:
            if child.nodeType == Node.CDATA_SECTION_NODE:
                obj[CDATA_KEY] = escape(child.data)

    # whitespace-only content counts as empty
    return obj if obj else None


def _add_child(
    obj: Dict[str, Any],
    child: minidom.Element,
    uniform: bool,
    tag_alias: Optional[Callable[[str], str]],
) -> None:
    key = tag_alias(child.tagName) if tag_alias else child.tagName
    value = _to_obj(child, uniform, tag_alias)
    if key != child.tagName and isinstance(value, dict):
        value[TAG_KEY] = child.tagName

    if uniform:
        obj.setdefault(key, []).append(value)
    elif key not in obj:
        obj[key] = value
    elif isinstance(obj[key], list):
        obj[key].append(value)
    else:
        # second occurrence: promote the single value to a list
        obj[key] = [obj[key], value]
