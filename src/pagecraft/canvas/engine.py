"""Tree Mutation Engine.

The single writer of the canvas document. Every structural edit goes
through ``CanvasEngine``; illegal operations are validated up front and
rejected without touching the forest, so no rollback is ever needed.
"""

import copy
from typing import Any, Callable

from ..binding import DataSourceAccessor, resolve_properties
from ..catalog import MetadataCatalog
from ..core import get_logger
from ..core.id import new_component_id
from ..core.validate import MAX_DOCUMENT_DEPTH
from ..monitoring import metrics_collector
from . import store
from .breakpoints import BreakpointSelector, effective_properties
from .dnd import DropPosition, HoverEvent, HoverTracker, Rect, resolve_for_node
from .models import ComponentMetadata, ComponentNode, Forest, Subtree

logger = get_logger(__name__)


class CanvasEngine:
    """
    Owns the canvas forest plus selection, hover and clipboard state.

    Mutations replace ``forest`` with a new instance; a rejected or no-op
    operation leaves the very same object in place.
    """

    def __init__(
        self,
        catalog: MetadataCatalog | None = None,
        breakpoints: BreakpointSelector | None = None,
        id_factory: Callable[[], str] = new_component_id,
        forest: Forest | None = None,
        max_depth: int = MAX_DOCUMENT_DEPTH,
    ) -> None:
        self.catalog = catalog
        self.max_depth = max_depth
        self.breakpoints = breakpoints or BreakpointSelector()
        self.id_factory = id_factory

        self.forest = forest or Forest()
        self.selected_id: str | None = None
        self.hovered_container_id: str | None = None
        self.hovered_component_id: str | None = None
        self.clipboard: Subtree | None = None
        self.hover = HoverTracker()

    # =========================================================================
    # Internal
    # =========================================================================

    def _commit(self, operation: str, forest: Forest) -> bool:
        """Install a new forest; False when the operation changed nothing."""
        if forest is self.forest:
            metrics_collector.record_operation(operation, "noop")
            return False

        self.forest = forest
        metrics_collector.record_operation(operation, "applied")
        metrics_collector.set_node_count(len(forest))
        return True

    def _reject(self, operation: str, reason: str, **context: Any) -> None:
        metrics_collector.record_operation(operation, "rejected")
        logger.warning("operation_rejected", operation=operation, reason=reason, **context)

    def _too_deep(self, operation: str, parent_id: str | None, height: int) -> bool:
        """Reject placements that would nest deeper than a saved document may."""
        depth = (store.depth_of(self.forest, parent_id) if parent_id else 0) + height
        if depth > self.max_depth:
            self._reject(operation, "too_deep", parent_id=parent_id, depth=depth, max_depth=self.max_depth)
            return True
        return False

    def _resolve_metadata(self, metadata: ComponentMetadata | str) -> ComponentMetadata | None:
        if isinstance(metadata, ComponentMetadata):
            return metadata
        if self.catalog is None:
            return None
        return self.catalog.lookup_by_name(metadata)

    # =========================================================================
    # Structural edits
    # =========================================================================

    def add_component(self, metadata: ComponentMetadata | str, parent_id: str | None = None) -> ComponentNode | None:
        """
        Instantiate a component and place it.

        Args:
            metadata: Component metadata, or a name looked up in the catalog
            parent_id: Container to append into (default: end of the top level)

        Returns:
            The new node (now selected), or None when rejected
        """
        resolved = self._resolve_metadata(metadata)
        if resolved is None:
            self._reject("add_component", "unknown_component", name=metadata)
            return None

        if parent_id is not None:
            parent = store.find(self.forest, parent_id)
            if parent is None or not parent.is_container:
                self._reject("add_component", "invalid_parent", parent_id=parent_id)
                return None
            if self._too_deep("add_component", parent_id, 1):
                return None

        library = self.catalog.library_of(resolved.name) if self.catalog else "general"
        node = ComponentNode(
            id=self.id_factory(),
            metadata=resolved,
            library=library,
            base_properties=copy.deepcopy(resolved.initial_values),
            parent_id=parent_id,
        )
        subtree = Subtree(root_id=node.id, nodes={node.id: node})

        if parent_id is None:
            forest = store.insert_at_root_end(self.forest, subtree)
        else:
            forest = store.insert_into_container(self.forest, parent_id, subtree)

        if not self._commit("add_component", forest):
            return None

        self.selected_id = node.id
        logger.info("component_added", node_id=node.id, name=resolved.name, parent_id=parent_id)
        return self.forest.nodes[node.id]

    def add_component_to_container(self, container_id: str, metadata: ComponentMetadata | str) -> ComponentNode | None:
        """Palette drop onto a container."""
        return self.add_component(metadata, parent_id=container_id)

    def move_within_sibling_list(self, drag_index: int, hover_index: int) -> bool:
        """
        Reorder the top-level list; the moved node becomes selected.

        Out-of-range indexes are ignored.
        """
        count = len(self.forest.roots)
        if not (0 <= drag_index < count and 0 <= hover_index < count):
            metrics_collector.record_operation("move_within_sibling_list", "noop")
            return False

        changed = self._commit(
            "move_within_sibling_list", store.reorder_roots(self.forest, drag_index, hover_index)
        )
        self.selected_id = self.forest.roots[hover_index]
        return changed

    def reparent(self, drag_id: str, target_id: str, position: DropPosition | str) -> bool:
        """
        Move a node (with its subtree) before, after or inside another node.

        Rejects dropping onto itself, into its own descendant, inside a
        non-container, or with ids that are not on the canvas.
        """
        position = DropPosition(position)

        if drag_id == target_id:
            self._reject("reparent", "self_drop", node_id=drag_id)
            return False

        target = store.find(self.forest, target_id)
        if drag_id not in self.forest or target is None:
            self._reject("reparent", "not_found", drag_id=drag_id, target_id=target_id)
            return False

        if store.is_descendant(self.forest, drag_id, target_id):
            self._reject("reparent", "cycle", drag_id=drag_id, target_id=target_id)
            return False

        if position == DropPosition.INSIDE and not target.is_container:
            self._reject("reparent", "target_not_container", target_id=target_id)
            return False

        new_parent = target_id if position == DropPosition.INSIDE else target.parent_id
        height = store.subtree_height(store.extract_subtree(self.forest, drag_id))
        if self._too_deep("reparent", new_parent, height):
            return False

        subtree, detached = store.remove(self.forest, drag_id)
        if position == DropPosition.INSIDE:
            forest = store.insert_into_container(detached, target_id, subtree)
        else:
            forest = store.insert_relative(detached, target_id, subtree, position)

        changed = self._commit("reparent", forest)
        if changed:
            self.selected_id = drag_id
            logger.info("component_moved", node_id=drag_id, target_id=target_id, position=position.value)
        return changed

    def delete_component(self, node_id: str) -> bool:
        """Remove a node and its subtree; clears the selection."""
        removed, forest = store.remove(self.forest, node_id)
        if not self._commit("delete_component", forest):
            return False

        gone = removed.ids()
        if self.hovered_container_id in gone:
            self.hovered_container_id = None
        if self.hovered_component_id in gone:
            self.hovered_component_id = None

        self.selected_id = None
        logger.info("component_deleted", node_id=node_id, removed=len(gone))
        return True

    # =========================================================================
    # Clipboard
    # =========================================================================

    def copy_component(self, node_id: str) -> bool:
        """Copy a node's subtree (by value) into the clipboard."""
        subtree = store.extract_subtree(self.forest, node_id, deep=True)
        if subtree is None:
            return False

        self.clipboard = subtree
        logger.info("component_copied", node_id=node_id, nodes=len(subtree))
        return True

    def paste_component(self, target_id: str | None = None) -> str | None:
        """
        Paste the clipboard with fresh ids at every level.

        A container target receives it as its last child (and is selected);
        anything else pastes at the end of the top level and selects the
        pasted node.

        Returns:
            Id of the pasted root, or None when the clipboard is empty
        """
        if self.clipboard is None:
            return None

        pasted = store.clone_with_fresh_ids(self.clipboard, self.id_factory)
        target = store.find(self.forest, target_id) if target_id else None
        parent_id = target.id if target is not None and target.is_container else None
        if self._too_deep("paste_component", parent_id, store.subtree_height(pasted)):
            return None

        if target is not None and target.is_container:
            forest = store.insert_into_container(self.forest, target.id, pasted)
            selection = target.id
        else:
            forest = store.insert_at_root_end(self.forest, pasted)
            selection = pasted.root_id

        if not self._commit("paste_component", forest):
            return None

        self.selected_id = selection
        logger.info("component_pasted", node_id=pasted.root_id, target_id=target_id, nodes=len(pasted))
        return pasted.root_id

    # =========================================================================
    # Selection
    # =========================================================================

    def select_component(self, node_id: str) -> bool:
        if node_id not in self.forest:
            return False
        self.selected_id = node_id
        return True

    def clear_selection(self) -> None:
        self.selected_id = None

    def select_parent(self, node_id: str) -> str | None:
        """Select the container holding ``node_id``; None for top-level nodes."""
        parent = store.find_parent(self.forest, node_id)
        if parent is None:
            return None
        self.selected_id = parent.id
        return parent.id

    @property
    def selected_node(self) -> ComponentNode | None:
        return store.find(self.forest, self.selected_id) if self.selected_id else None

    @property
    def selected_metadata(self) -> ComponentMetadata | None:
        node = self.selected_node
        return node.metadata if node else None

    # =========================================================================
    # Properties
    # =========================================================================

    def apply_properties(self, node_id: str, properties: dict[str, Any]) -> bool:
        """Replace a node's base properties wholesale."""
        return self._commit("apply_properties", store.replace_properties(self.forest, node_id, properties))

    def update_property(self, node_id: str, name: str, value: Any) -> bool:
        """
        Edit a single property.

        Once a node has any breakpoint override, edits go to the active
        breakpoint's layer; before that they change the base properties.
        """
        node = store.find(self.forest, node_id)
        if node is None:
            metrics_collector.record_operation("update_property", "noop")
            return False

        if node.breakpoint_overrides:
            return self.set_breakpoint_property(node_id, self.breakpoints.active_id, name, value)

        return self._commit(
            "update_property",
            store.replace_properties(self.forest, node_id, {**node.base_properties, name: value}),
        )

    def set_breakpoint_property(self, node_id: str, breakpoint_id: str, name: str, value: Any) -> bool:
        """Override one property for one breakpoint."""
        return self._commit(
            "set_breakpoint_property",
            store.merge_breakpoint_override(self.forest, node_id, breakpoint_id, {name: value}),
        )

    def effective_properties(self, node_id: str, breakpoint_id: str | None = None) -> dict[str, Any] | None:
        """Base properties with the (given or active) breakpoint's overrides applied."""
        node = store.find(self.forest, node_id)
        if node is None:
            return None
        return effective_properties(node, breakpoint_id or self.breakpoints.active_id)

    def render_properties(self, node_id: str, accessor: DataSourceAccessor) -> dict[str, Any] | None:
        """Effective properties with template bindings resolved."""
        node = store.find(self.forest, node_id)
        if node is None:
            return None
        return resolve_properties(
            effective_properties(node, self.breakpoints.active_id), accessor, node.metadata
        )

    def render(self, accessor: DataSourceAccessor) -> list[Any]:
        """
        Render the whole canvas through the catalog's renderers.

        Nodes without a renderer render as nothing; their children are
        dropped with them.
        """

        def render_node(node: ComponentNode) -> Any:
            renderer = self.catalog.renderer_for(node.name) if self.catalog else None
            if renderer is None:
                logger.debug("renderer_missing", name=node.name)
                return None

            children = [render_node(self.forest.nodes[c]) for c in node.children] if node.is_container else []
            props = resolve_properties(
                effective_properties(node, self.breakpoints.active_id), accessor, node.metadata
            )
            return renderer(props, [c for c in children if c is not None])

        rendered = (render_node(node) for node in self.forest.root_nodes())
        return [r for r in rendered if r is not None]

    # =========================================================================
    # Drag and drop
    # =========================================================================

    def drag_hover(self, target_id: str, rect: Rect, pointer_y: float) -> list[HoverEvent]:
        """Track the pointer over a target; returns hover transitions (if any)."""
        target = store.find(self.forest, target_id)
        if target is None:
            return self.hover.clear()
        return self.hover.update(target_id, resolve_for_node(target, rect, pointer_y))

    def handle_drop(self, drag_id: str, target_id: str, rect: Rect, pointer_y: float) -> DropPosition | None:
        """
        Drop a placed node onto another node.

        Returns:
            The resolved position when the move was applied, else None
        """
        self.hover.clear()
        target = store.find(self.forest, target_id)
        if target is None:
            self._reject("handle_drop", "not_found", target_id=target_id)
            return None

        position = resolve_for_node(target, rect, pointer_y)
        return position if self.reparent(drag_id, target_id, position) else None

    def set_container_hover(self, container_id: str, hovering: bool) -> None:
        """Track which container the pointer is over during a drag."""
        if hovering:
            self.hovered_container_id = container_id
        elif self.hovered_container_id == container_id:
            self.hovered_container_id = None

    @property
    def root_drop_enabled(self) -> bool:
        """Top-level drops are accepted only while no container is hovered."""
        return self.hovered_container_id is None

    def set_component_hover(self, node_id: str | None) -> None:
        self.hovered_component_id = node_id

    # =========================================================================
    # Keyboard
    # =========================================================================

    def handle_shortcut(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        """
        Ctrl/Cmd+C copies the selection; Ctrl/Cmd+V pastes into it.

        Returns:
            True when the shortcut was handled
        """
        if not (ctrl or meta):
            return False

        key = key.lower()
        if key == "c" and self.selected_id:
            return self.copy_component(self.selected_id)
        if key == "v" and self.clipboard is not None:
            return self.paste_component(self.selected_id) is not None
        return False

    # =========================================================================
    # Document
    # =========================================================================

    def load(self, forest: Forest, selected_id: str | None = None) -> None:
        """Replace the document (e.g. after restoring a save); transient state resets."""
        self.forest = forest
        self.selected_id = selected_id if selected_id in forest else None
        self.hovered_container_id = None
        self.hovered_component_id = None
        self.hover.clear()
        metrics_collector.set_node_count(len(forest))
        logger.info("document_loaded", nodes=len(forest), roots=len(forest.roots))
