"""
markup package

Markup-to-tree conversion, adapter selection and the position-aware span
scanner used for in-place text edits.
"""

from markup.tree import to_tree, escape, unescape, element_text
from markup.selector import select_adapter, adapter_names, adapter_name_at
from markup.spans import ElementSpan, TextPatch, scan, apply_patches

__all__ = [
    "to_tree",
    "escape",
    "unescape",
    "element_text",
    "select_adapter",
    "adapter_names",
    "adapter_name_at",
    "ElementSpan",
    "TextPatch",
    "scan",
    "apply_patches",
]
