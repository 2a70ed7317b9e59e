"""
Canvas document model: the component forest, drag-and-drop resolution and
breakpoint layering.

The engine and persistence layers depend on the catalog and binding
packages; import them from ``pagecraft.canvas.engine`` and
``pagecraft.canvas.persistence``.
"""

from .models import (
    Breakpoint,
    ComponentKind,
    ComponentMetadata,
    ComponentNode,
    Forest,
    PropertyKind,
    PropertyType,
    Subtree,
)
from .dnd import DropPosition, HoverEvent, HoverTracker, Rect, can_accept_drop, resolve_drop_position
from .breakpoints import BREAKPOINTS, BreakpointSelector, detect_breakpoint, effective_properties

__all__ = [
    # Models
    "Breakpoint",
    "ComponentKind",
    "ComponentMetadata",
    "ComponentNode",
    "Forest",
    "PropertyKind",
    "PropertyType",
    "Subtree",
    # Drag and drop
    "DropPosition",
    "HoverEvent",
    "HoverTracker",
    "Rect",
    "can_accept_drop",
    "resolve_drop_position",
    # Breakpoints
    "BREAKPOINTS",
    "BreakpointSelector",
    "detect_breakpoint",
    "effective_properties",
]
