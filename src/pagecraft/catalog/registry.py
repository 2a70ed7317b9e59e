"""
Metadata Catalog
Central registry of component types, grouped by library
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ..canvas.models import ComponentMetadata
from ..core import get_logger

logger = get_logger(__name__)

# Renders one node: (resolved properties, rendered children) -> output
Renderer = Callable[[dict[str, Any], list[Any]], Any]


@dataclass(frozen=True)
class CatalogEntry:
    """A registered component type and the capabilities attached to it."""

    metadata: ComponentMetadata
    library: str
    renderer: Renderer | None = None


def merge_component_metadata(
    current: ComponentMetadata | None, stored: ComponentMetadata
) -> ComponentMetadata:
    """
    Merge a stored metadata snapshot onto the catalog's current definition.

    Current metadata is the base and stored values override it; the property
    schema and initial values are merged key by key so properties added to
    the catalog since the snapshot was taken appear on restore.
    """
    if current is None:
        return stored

    return current.model_copy(
        update={
            "name": stored.name,
            "description": stored.description or current.description,
            "category": stored.category if stored.category is not None else current.category,
            "kind": stored.kind,
            "property_schema": {**current.property_schema, **stored.property_schema},
            "initial_values": {**current.initial_values, **stored.initial_values},
        }
    )


class MetadataCatalog:
    """
    Registry of every component type the canvas can place.

    Registration order is kept (palette order). Renderers are looked up by
    name at render time and never stored on nodes or in saved documents.
    """

    def __init__(self, default_library: str = "general") -> None:
        self.default_library = default_library
        self.entries: dict[str, CatalogEntry] = {}
        logger.info("catalog_init", default_library=default_library)

    def register(
        self,
        metadata: ComponentMetadata | dict[str, Any],
        library: str | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        """
        Register a component type.

        Args:
            metadata: Metadata model or plain mapping (validated)
            library: Library tag (default: catalog default)
            renderer: Optional render capability
        """
        if isinstance(metadata, dict):
            metadata = ComponentMetadata.model_validate(metadata)

        if metadata.name in self.entries:
            logger.warning("component_already_registered", name=metadata.name)
            return

        self.entries[metadata.name] = CatalogEntry(
            metadata=metadata,
            library=library or self.default_library,
            renderer=renderer,
        )
        logger.debug("component_registered", name=metadata.name, library=library or self.default_library)

    def register_library(
        self,
        library: str,
        components: Iterable[ComponentMetadata | dict[str, Any]],
        renderers: dict[str, Renderer] | None = None,
    ) -> int:
        """
        Register a whole library.

        Returns:
            Number of component types registered
        """
        renderers = renderers or {}
        before = len(self.entries)
        for metadata in components:
            name = metadata["name"] if isinstance(metadata, dict) else metadata.name
            self.register(metadata, library=library, renderer=renderers.get(name))

        added = len(self.entries) - before
        logger.info("library_registered", library=library, components=added)
        return added

    def unregister(self, name: str) -> None:
        """Remove a component type"""
        if self.entries.pop(name, None) is not None:
            logger.info("component_unregistered", name=name)

    def lookup_by_name(self, name: str) -> ComponentMetadata | None:
        """Get current metadata by component name"""
        entry = self.entries.get(name)
        return entry.metadata if entry else None

    def library_of(self, name: str) -> str:
        """Library a component type belongs to (default library when unknown)"""
        entry = self.entries.get(name)
        return entry.library if entry else self.default_library

    def renderer_for(self, name: str) -> Renderer | None:
        """Render capability for a component type"""
        entry = self.entries.get(name)
        return entry.renderer if entry else None

    def list_all(self, category: str | None = None, library: str | None = None) -> list[ComponentMetadata]:
        """
        List registered component types in registration order.

        Args:
            category: Optional category filter
            library: Optional library filter
        """
        entries = list(self.entries.values())

        if category:
            entries = [e for e in entries if e.metadata.category == category]
        if library:
            entries = [e for e in entries if e.library == library]

        return [e.metadata for e in entries]

    def libraries(self) -> list[str]:
        """Library tags in first-registration order"""
        return list(dict.fromkeys(e.library for e in self.entries.values()))

    def restore_metadata(self, stored: ComponentMetadata) -> ComponentMetadata:
        """Re-resolve a stored metadata snapshot against the current catalog."""
        current = self.lookup_by_name(stored.name)
        if current is None:
            logger.warning("component_not_in_catalog", name=stored.name)
        return merge_component_metadata(current, stored)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)
