"""
Component metadata catalog.
Registry of placeable component types and their render capabilities.
"""

from .registry import CatalogEntry, MetadataCatalog, Renderer, merge_component_metadata
from .general import (
    GENERAL_ELEMENTS,
    GENERAL_LIBRARY,
    RenderedElement,
    element_renderer,
    register_general_elements,
)

__all__ = [
    "CatalogEntry",
    "MetadataCatalog",
    "Renderer",
    "merge_component_metadata",
    "GENERAL_ELEMENTS",
    "GENERAL_LIBRARY",
    "RenderedElement",
    "element_renderer",
    "register_general_elements",
]
