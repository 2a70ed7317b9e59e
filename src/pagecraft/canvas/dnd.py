"""Drag-and-drop position resolution.

Splits a drop target's rectangle into three vertical bands: the top
quarter drops *before* the target, the bottom quarter *after* it, and the
middle half *inside* it. Only containers accept an inside drop; for leaf
targets the middle band snaps to the nearer edge.
"""

from dataclasses import dataclass
from enum import Enum

from ..core import get_logger
from .models import ComponentNode

logger = get_logger(__name__)

BEFORE_BAND = 0.25
AFTER_BAND = 0.75


class DropPosition(str, Enum):
    """Where a dragged node lands relative to its target."""

    BEFORE = "before"
    AFTER = "after"
    INSIDE = "inside"


@dataclass(frozen=True)
class Rect:
    """On-screen bounds of a drop target (only the vertical extent matters)."""

    top: float
    height: float
    left: float = 0.0
    width: float = 0.0

    @property
    def bottom(self) -> float:
        return self.top + self.height


def offset_ratio(rect: Rect, pointer_y: float) -> float:
    """Pointer position within the rect as a 0..1 fraction of its height."""
    if rect.height <= 0:
        return 0.5
    ratio = (pointer_y - rect.top) / rect.height
    return min(max(ratio, 0.0), 1.0)


def resolve_drop_position(rect: Rect, pointer_y: float, accepts_children: bool) -> DropPosition:
    """
    Decide where a drop at ``pointer_y`` lands.

    Args:
        rect: Target bounds
        pointer_y: Pointer's vertical coordinate (same space as rect)
        accepts_children: Whether the target is container-kind

    Returns:
        BEFORE, AFTER or (containers only) INSIDE
    """
    ratio = offset_ratio(rect, pointer_y)

    if ratio < BEFORE_BAND:
        return DropPosition.BEFORE
    if ratio > AFTER_BAND:
        return DropPosition.AFTER
    if accepts_children:
        return DropPosition.INSIDE
    return DropPosition.BEFORE if ratio < 0.5 else DropPosition.AFTER


def resolve_for_node(node: ComponentNode, rect: Rect, pointer_y: float) -> DropPosition:
    """Resolve a drop position against a placed node."""
    return resolve_drop_position(rect, pointer_y, can_accept_drop(node))


def can_accept_drop(node: ComponentNode | None) -> bool:
    """Whether the container-style drop affordance is shown for a target."""
    return node is not None and node.is_container


@dataclass(frozen=True)
class HoverEvent:
    """A hover transition: entering or leaving a (target, position) pair."""

    target_id: str
    position: DropPosition
    entered: bool


class HoverTracker:
    """
    Deduplicates hover notifications during a drag.

    Pointer-move ticks arrive far more often than the hovered target or
    band changes; only real transitions are reported, as a leave for the
    previous pair followed by an enter for the new one.
    """

    def __init__(self) -> None:
        self._current: tuple[str, DropPosition] | None = None

    @property
    def current(self) -> tuple[str, DropPosition] | None:
        return self._current

    def update(self, target_id: str, position: DropPosition) -> list[HoverEvent]:
        """Record the latest hover; returns the transitions it caused (maybe none)."""
        pair = (target_id, DropPosition(position))
        if pair == self._current:
            return []

        events = self.clear()
        self._current = pair
        events.append(HoverEvent(target_id=pair[0], position=pair[1], entered=True))
        logger.debug("hover_enter", target_id=pair[0], position=pair[1].value)
        return events

    def clear(self) -> list[HoverEvent]:
        """End hovering (drag left every target or finished)."""
        if self._current is None:
            return []
        target_id, position = self._current
        self._current = None
        return [HoverEvent(target_id=target_id, position=position, entered=False)]
