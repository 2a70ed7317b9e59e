"""Breakpoint catalog and override resolution.

A node's effective property set for a breakpoint is its base properties
with that breakpoint's sparse override layer merged on top.
"""

from typing import Any, Iterable

from ..core import get_logger
from .models import Breakpoint, ComponentNode

logger = get_logger(__name__)


# Sorted ascending by width
BREAKPOINTS: tuple[Breakpoint, ...] = (
    Breakpoint(id="mobile", name="Mobile", width=375, height=812, category="mobile"),
    Breakpoint(id="tablet", name="Tablet", width=768, height=1024, category="tablet"),
    Breakpoint(id="desktop", name="Desktop", width=1200, height=800, category="desktop"),
    Breakpoint(id="large-desktop", name="Large Desktop", width=1920, height=1080, category="desktop"),
)


def get_breakpoint(breakpoint_id: str, catalog: Iterable[Breakpoint] = BREAKPOINTS) -> Breakpoint | None:
    """Look up a breakpoint by id."""
    for breakpoint in catalog:
        if breakpoint.id == breakpoint_id:
            return breakpoint
    return None


def detect_breakpoint(width: float, catalog: Iterable[Breakpoint] = BREAKPOINTS) -> Breakpoint:
    """
    Pick the largest breakpoint whose width fits the viewport.

    Defaults to the smallest breakpoint when the viewport is narrower than
    all of them.

    Raises:
        ValueError: If the catalog is empty
    """
    ordered = sorted(catalog, key=lambda bp: bp.width)
    if not ordered:
        raise ValueError("Breakpoint catalog is empty")

    selected = ordered[0]
    for breakpoint in ordered:
        if width >= breakpoint.width:
            selected = breakpoint
        else:
            break
    return selected


def effective_properties(node: ComponentNode, breakpoint_id: str | None) -> dict[str, Any]:
    """
    Base properties with the active breakpoint's overrides layered on top.

    Override keys win; base keys without an override pass through.
    """
    overrides = node.breakpoint_overrides.get(breakpoint_id, {}) if breakpoint_id else {}
    return {**node.base_properties, **overrides}


class BreakpointSelector:
    """
    Tracks the active breakpoint.

    In auto mode the active breakpoint follows viewport detection; a manual
    selection switches to manual mode and is kept until auto mode is
    explicitly turned back on.
    """

    def __init__(self, catalog: Iterable[Breakpoint] = BREAKPOINTS, width: float | None = None) -> None:
        self.catalog = tuple(sorted(catalog, key=lambda bp: bp.width))
        self.detected = detect_breakpoint(width, self.catalog) if width is not None else self.catalog[0]
        self.selected = self.detected
        self.auto_mode = True

    @property
    def active_id(self) -> str:
        return self.selected.id

    def on_viewport_change(self, width: float) -> Breakpoint:
        """Feed a new viewport width; returns the active breakpoint."""
        self.detected = detect_breakpoint(width, self.catalog)
        if self.auto_mode and self.selected != self.detected:
            self.selected = self.detected
            logger.debug("breakpoint_auto_changed", breakpoint=self.selected.id, width=width)
        return self.selected

    def on_detected(self, breakpoint_id: str) -> Breakpoint:
        """Feed an already-detected breakpoint id (from an external detector)."""
        breakpoint = get_breakpoint(breakpoint_id, self.catalog)
        if breakpoint is None:
            logger.warning("unknown_breakpoint", breakpoint=breakpoint_id)
            return self.selected
        return self.on_viewport_change(breakpoint.width)

    def select(self, breakpoint_id: str) -> Breakpoint:
        """Manually select a breakpoint (leaves auto mode)."""
        breakpoint = get_breakpoint(breakpoint_id, self.catalog)
        if breakpoint is None:
            logger.warning("unknown_breakpoint", breakpoint=breakpoint_id)
            return self.selected
        self.selected = breakpoint
        self.auto_mode = False
        logger.info("breakpoint_selected", breakpoint=breakpoint_id)
        return self.selected

    def set_auto_mode(self, enabled: bool) -> Breakpoint:
        """Turn auto mode on (snaps back to the detected breakpoint) or off."""
        self.auto_mode = enabled
        if enabled:
            self.selected = self.detected
        return self.selected
