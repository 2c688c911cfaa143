"""
editor package

Text surgery on the markup document and the synchronizer that keeps the
markup text and the flow diagram in step.
"""

from editor import surgeon
from editor.sync import FlowSynchronizer

__all__ = [
    "surgeon",
    "FlowSynchronizer",
]
