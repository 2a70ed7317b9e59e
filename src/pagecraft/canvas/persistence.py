"""Canvas Document Persistence.

Saved documents are nested plain data: each component carries its
metadata snapshot, properties, overrides and nested children. Renderers,
clipboard and hover state are never written. On load every node's
metadata is re-resolved through the catalog so components pick up
properties added since the save.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Iterator, MutableMapping

from pydantic import ValidationError as PydanticValidationError
from returns.result import Failure, Result, Success

from ..catalog import MetadataCatalog
from ..core import get_logger
from ..core.hash import hash_string
from ..core.id import new_component_id
from ..core.json import JSONParseError, parse_json_value, safe_json_dumps
from ..core.validate import MAX_DOCUMENT_DEPTH, ValidationError, ValidationResult, validate_document
from ..monitoring import metrics_collector
from .models import ComponentMetadata, ComponentNode, Forest

logger = get_logger(__name__)

DOCUMENT_VERSION = 1

# Storage keys
CANVAS_COMPONENTS_KEY = "canvas-components"
SELECTED_COMPONENT_KEY = "selected-component"
API_ENDPOINTS_KEY = "api-endpoints"

_DROP = object()


# =============================================================================
# Serialization
# =============================================================================


def _plain(value: Any, seen: set[int]) -> Any:
    """Reduce a value to JSON-safe plain data; unsupported values become _DROP."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value

    if isinstance(value, (dict, list, tuple)):
        if id(value) in seen:
            return _DROP
        seen = seen | {id(value)}

        if isinstance(value, dict):
            items = ((str(k), _plain(v, seen)) for k, v in value.items())
            return {k: v for k, v in items if v is not _DROP}
        items = (_plain(v, seen) for v in value)
        return [v for v in items if v is not _DROP]

    # Callables and arbitrary objects have no saved form
    logger.debug("field_dropped", type=type(value).__name__)
    return _DROP


def _plain_mapping(value: dict[str, Any]) -> dict[str, Any]:
    result = _plain(value, set())
    return result if isinstance(result, dict) else {}


def _serialize_node(forest: Forest, node: ComponentNode, path: set[str]) -> dict[str, Any]:
    metadata = node.metadata.model_dump(mode="json", exclude={"initial_values"})
    metadata["initial_values"] = _plain_mapping(node.metadata.initial_values)

    return {
        "id": node.id,
        "library": node.library,
        "metadata": metadata,
        "base_properties": _plain_mapping(node.base_properties),
        "breakpoint_overrides": _plain_mapping(node.breakpoint_overrides),
        "parent_id": node.parent_id,
        "children": [
            _serialize_node(forest, forest.nodes[child_id], path | {node.id})
            for child_id in node.children
            if child_id in forest.nodes and child_id not in path
        ],
    }


def serialize_forest(forest: Forest) -> list[dict[str, Any]]:
    """Forest as nested plain data, top-level components in order."""
    return [_serialize_node(forest, node, set()) for node in forest.root_nodes()]


def _encode_document(forest: Forest) -> tuple[str, str]:
    """Encode a save; returns (text, mode) with mode ``full`` or ``summary``."""
    components = serialize_forest(forest)
    document = {
        "version": DOCUMENT_VERSION,
        "components": components,
        "metadata": {"total_components": len(forest), "root_count": len(forest.roots)},
    }
    try:
        return safe_json_dumps(document), "full"
    except (TypeError, ValueError) as e:
        logger.error("document_serialize_failed", error=str(e))

    summary = {
        "version": DOCUMENT_VERSION,
        "summary": True,
        "components": [],
        "metadata": {"total_components": len(forest), "root_count": len(forest.roots)},
    }
    return safe_json_dumps(summary), "summary"


def dumps_document(forest: Forest) -> str:
    """
    Encode a forest for storage.

    Falls back to a counts-only summary when the document cannot be
    encoded at all.
    """
    text, _ = _encode_document(forest)
    return text


# =============================================================================
# Deserialization
# =============================================================================


class _Rebuilder:
    """Rebuilds a forest from nested plain data, repairing what it can."""

    def __init__(self, catalog: MetadataCatalog | None) -> None:
        self.catalog = catalog
        self.nodes: dict[str, ComponentNode] = {}
        self.seen_ids: set[str] = set()
        self.skipped = 0

    def restore_metadata(self, stored: ComponentMetadata) -> tuple[ComponentMetadata, dict[str, Any]]:
        """Merged metadata plus initial values the stored snapshot did not know about."""
        if self.catalog is None:
            return stored, {}

        merged = self.catalog.restore_metadata(stored)
        added = {k: v for k, v in merged.initial_values.items() if k not in stored.initial_values}
        return merged, added

    def build(self, item: dict[str, Any], parent_id: str | None) -> str | None:
        """Rebuild one component and its children; returns its id or None if skipped."""
        node_id = item.get("id")
        if not isinstance(node_id, str) or not node_id:
            node_id = new_component_id()
        if node_id in self.seen_ids:
            logger.warning("duplicate_id_dropped", node_id=node_id)
            self.skipped += 1
            return None
        self.seen_ids.add(node_id)

        try:
            stored = ComponentMetadata.model_validate(item.get("metadata") or {})
        except (PydanticValidationError, ValidationError) as e:
            logger.warning("component_skipped", node_id=node_id, error=str(e))
            self.skipped += 1
            return None

        metadata, added = self.restore_metadata(stored)
        base = item.get("base_properties")
        base = dict(base) if isinstance(base, dict) else {}
        for key, value in added.items():
            base.setdefault(key, copy.deepcopy(value))

        overrides = item.get("breakpoint_overrides")
        overrides = {
            bp: dict(layer)
            for bp, layer in (overrides.items() if isinstance(overrides, dict) else ())
            if isinstance(layer, dict)
        }

        if self.catalog is not None and metadata.name in self.catalog:
            library = self.catalog.library_of(metadata.name)
        else:
            library = item.get("library") or "general"

        children = []
        for child in item.get("children") or []:
            if isinstance(child, dict):
                child_id = self.build(child, node_id)
                if child_id is not None:
                    children.append(child_id)

        self.nodes[node_id] = ComponentNode(
            id=node_id,
            metadata=metadata,
            library=library,
            base_properties=base,
            breakpoint_overrides=overrides,
            children=children,
            parent_id=parent_id,
        )
        return node_id


def deserialize_forest(
    document: Any, catalog: MetadataCatalog | None = None, max_depth: int = MAX_DOCUMENT_DEPTH
) -> Result[Forest, ValidationResult]:
    """
    Rebuild a forest from decoded document data (a list of components or
    a ``{"components": [...]}`` mapping).

    ``parent_id`` is recomputed from containment, duplicate ids are dropped
    (first occurrence wins) and components with invalid metadata are
    skipped with their subtree.
    """
    validation = validate_document(document, max_depth)
    if isinstance(validation, Failure):
        return validation

    components = document if isinstance(document, list) else document["components"]
    rebuilder = _Rebuilder(catalog)
    roots = [r for r in (rebuilder.build(item, None) for item in components) if r is not None]

    if rebuilder.skipped:
        logger.warning("document_repaired", skipped=rebuilder.skipped)

    return Success(Forest(nodes=rebuilder.nodes, roots=roots))


def load_document(
    text: str | bytes, catalog: MetadataCatalog | None = None, max_depth: int = MAX_DOCUMENT_DEPTH
) -> Result[Forest, ValidationResult]:
    """Decode and rebuild a saved document."""
    try:
        document = parse_json_value(text)
    except JSONParseError as e:
        return Failure(ValidationResult(str(e)))
    return deserialize_forest(document, catalog, max_depth)


# =============================================================================
# Storage
# =============================================================================


class CanvasStorage:
    """
    Saves and restores canvas state in a string key-value store.

    A document is only rewritten when its content fingerprint changes.
    """

    def __init__(
        self,
        backend: MutableMapping[str, str],
        catalog: MetadataCatalog | None = None,
        max_depth: int = MAX_DOCUMENT_DEPTH,
    ) -> None:
        self.backend = backend
        self.catalog = catalog
        self.max_depth = max_depth
        self._fingerprint: str | None = None

    def save(self, forest: Forest) -> str:
        """
        Persist the document.

        Returns:
            Save mode: ``full``, ``summary`` or ``unchanged``
        """
        text, mode = _encode_document(forest)
        fingerprint = hash_string(text)

        if fingerprint == self._fingerprint and CANVAS_COMPONENTS_KEY in self.backend:
            metrics_collector.record_save("unchanged")
            return "unchanged"

        self.backend[CANVAS_COMPONENTS_KEY] = text
        self._fingerprint = fingerprint
        metrics_collector.record_save(mode)
        logger.info("document_saved", mode=mode, nodes=len(forest))
        return mode

    def load(self) -> Result[Forest, ValidationResult]:
        """Restore the saved document; an empty forest when nothing is saved."""
        text = self.backend.get(CANVAS_COMPONENTS_KEY)
        if text is None:
            return Success(Forest())

        result = load_document(text, self.catalog, self.max_depth)
        if isinstance(result, Success):
            self._fingerprint = hash_string(text)
        else:
            logger.error("document_load_failed", error=result.failure().message)
            metrics_collector.record_error("document_load_failed", "persistence")
        return result

    def save_selection(self, node_id: str | None) -> None:
        if node_id:
            self.backend[SELECTED_COMPONENT_KEY] = node_id
        else:
            self.backend.pop(SELECTED_COMPONENT_KEY, None)

    def load_selection(self) -> str | None:
        return self.backend.get(SELECTED_COMPONENT_KEY)

    def save_endpoints(self, endpoints: list[dict[str, Any]]) -> None:
        self.backend[API_ENDPOINTS_KEY] = safe_json_dumps(endpoints)

    def load_endpoints(self) -> list[dict[str, Any]]:
        """Saved endpoint definitions; empty when missing or unreadable."""
        text = self.backend.get(API_ENDPOINTS_KEY)
        if text is None:
            return []
        try:
            items = parse_json_value(text)
        except JSONParseError as e:
            logger.warning("endpoints_load_failed", error=str(e))
            return []
        return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []


class JsonFileStorage(MutableMapping[str, str]):
    """Key-value store keeping one ``<key>.json`` file per key in a directory."""

    KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not self.KEY_PATTERN.match(key):
            raise KeyError(key)
        return self.directory / f"{key}.json"

    def __getitem__(self, key: str) -> str:
        path = self._path(key)
        if not path.is_file():
            raise KeyError(key)
        return path.read_text(encoding="utf-8")

    def __setitem__(self, key: str, value: str) -> None:
        path = self._path(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        finally:
            tmp.unlink(missing_ok=True)

    def __delitem__(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise KeyError(key)
        path.unlink()

    def __iter__(self) -> Iterator[str]:
        if not self.directory.is_dir():
            return iter(())
        return iter(sorted(p.stem for p in self.directory.glob("*.json")))

    def __len__(self) -> int:
        return sum(1 for _ in self)
