"""ComponentNode Store - pure operations over the canvas forest.

Every function takes a Forest and returns a new one; the input is never
mutated. Operations that address an unknown id return the *same* forest
object, so callers detect a no-op with an identity check.
"""

import copy
from typing import Any, Callable, Iterator

from ..core import get_logger
from ..core.id import new_component_id
from .dnd import DropPosition
from .models import ComponentNode, Forest, Subtree

logger = get_logger(__name__)


# =============================================================================
# Search
# =============================================================================


def walk(forest: Forest, start_id: str | None = None) -> Iterator[ComponentNode]:
    """
    Depth-first, root-to-leaf traversal in document order.

    Args:
        forest: Forest to traverse
        start_id: Traverse only the subtree rooted here (default: whole forest)
    """
    stack = [start_id] if start_id is not None else list(reversed(forest.roots))
    seen: set[str] = set()

    while stack:
        node_id = stack.pop()
        node = forest.nodes.get(node_id)
        if node is None or node_id in seen:
            continue
        seen.add(node_id)
        yield node
        stack.extend(reversed(node.children))


def find(forest: Forest, node_id: str) -> ComponentNode | None:
    """Find a node by id; None when absent."""
    # Ids are unique, so the arena entry is the first depth-first match.
    return forest.nodes.get(node_id)


def find_parent(forest: Forest, node_id: str) -> ComponentNode | None:
    """Find the immediate container whose children include ``node_id``."""
    for node in walk(forest):
        if node_id in node.children:
            return node
    return None


def subtree_ids(forest: Forest, node_id: str) -> list[str]:
    """Ids of a node and all its descendants, in document order."""
    return [node.id for node in walk(forest, node_id)]


def is_descendant(forest: Forest, ancestor_id: str, node_id: str) -> bool:
    """True when ``node_id`` lies strictly beneath ``ancestor_id``."""
    current = forest.nodes.get(node_id)
    visited: set[str] = set()

    while current is not None and current.parent_id is not None:
        if current.parent_id == ancestor_id:
            return True
        if current.parent_id in visited:
            break
        visited.add(current.parent_id)
        current = forest.nodes.get(current.parent_id)
    return False


def depth_of(forest: Forest, node_id: str) -> int:
    """Nesting level of a node: 1 for top-level nodes, 0 when absent."""
    depth = 0
    current = forest.nodes.get(node_id)
    visited: set[str] = set()

    while current is not None and current.id not in visited:
        visited.add(current.id)
        depth += 1
        current = forest.nodes.get(current.parent_id) if current.parent_id else None
    return depth


def subtree_height(subtree: Subtree) -> int:
    """Levels in a subtree, counting its root as 1."""
    height = 0
    stack = [(subtree.root_id, 1)]
    seen: set[str] = set()

    while stack:
        node_id, level = stack.pop()
        node = subtree.nodes.get(node_id)
        if node is None or node_id in seen:
            continue
        seen.add(node_id)
        height = max(height, level)
        stack.extend((child, level + 1) for child in node.children)
    return height


def extract_subtree(forest: Forest, node_id: str, deep: bool = False) -> Subtree | None:
    """
    Copy a node's subtree out of the forest without detaching it.

    Args:
        deep: Deep-copy property values (clipboard semantics)
    """
    if node_id not in forest.nodes:
        return None

    nodes: dict[str, ComponentNode] = {}
    for node in walk(forest, node_id):
        if deep:
            node = node.model_copy(
                update={
                    "base_properties": copy.deepcopy(node.base_properties),
                    "breakpoint_overrides": copy.deepcopy(node.breakpoint_overrides),
                    "children": list(node.children),
                }
            )
        nodes[node.id] = node
    return Subtree(root_id=node_id, nodes=nodes)


# =============================================================================
# Removal
# =============================================================================


def remove(forest: Forest, node_id: str) -> tuple[Subtree | None, Forest]:
    """
    Detach a node and its subtree.

    Returns:
        (detached subtree or None, new forest). The detached root has
        ``parent_id=None``; surviving siblings keep their order.
    """
    node = forest.nodes.get(node_id)
    if node is None:
        return None, forest

    removed_ids = subtree_ids(forest, node_id)
    removed = set(removed_ids)

    nodes = {k: v for k, v in forest.nodes.items() if k not in removed}
    roots = [r for r in forest.roots if r != node_id]

    parent = nodes.get(node.parent_id) if node.parent_id is not None else None
    if parent is not None:
        nodes[parent.id] = parent.model_copy(
            update={"children": [c for c in parent.children if c != node_id]}
        )

    detached = {i: forest.nodes[i] for i in removed_ids}
    detached[node_id] = node.model_copy(update={"parent_id": None})

    return Subtree(root_id=node_id, nodes=detached), forest.model_copy(update={"nodes": nodes, "roots": roots})


# =============================================================================
# Insertion
# =============================================================================


def _attach(forest: Forest, subtree: Subtree, parent_id: str | None, index: int | None) -> Forest:
    """Graft a subtree under ``parent_id`` (None = top level) at ``index`` (None = end)."""
    collisions = subtree.ids() & set(forest.nodes)
    if collisions:
        logger.warning("insert_rejected_duplicate_ids", count=len(collisions), root_id=subtree.root_id)
        return forest

    nodes = dict(forest.nodes)
    nodes.update(subtree.nodes)
    nodes[subtree.root_id] = subtree.root.model_copy(update={"parent_id": parent_id})
    roots = forest.roots

    if parent_id is None:
        roots = list(forest.roots)
        roots.insert(len(roots) if index is None else index, subtree.root_id)
    else:
        parent = nodes[parent_id]
        children = list(parent.children)
        children.insert(len(children) if index is None else index, subtree.root_id)
        nodes[parent_id] = parent.model_copy(update={"children": children})

    return forest.model_copy(update={"nodes": nodes, "roots": roots})


def insert_into_container(forest: Forest, container_id: str, subtree: Subtree) -> Forest:
    """
    Append a subtree as the last child of ``container_id``.

    Does not check container-kind; returns the forest unchanged when the
    container does not exist.
    """
    if container_id not in forest.nodes:
        return forest
    return _attach(forest, subtree, container_id, None)


def insert_at_root_end(forest: Forest, subtree: Subtree) -> Forest:
    """Append a subtree to the top-level sequence."""
    return _attach(forest, subtree, None, None)


def insert_relative(forest: Forest, target_id: str, subtree: Subtree, position: DropPosition | str) -> Forest:
    """
    Splice a subtree immediately before/after ``target_id`` in the target's
    own sibling list; the subtree inherits the target's ``parent_id``.
    """
    target = forest.nodes.get(target_id)
    position = DropPosition(position)
    if target is None or position == DropPosition.INSIDE:
        return forest

    if target.parent_id is None:
        siblings = forest.roots
    else:
        parent = forest.nodes.get(target.parent_id)
        if parent is None:
            return forest
        siblings = parent.children

    index = siblings.index(target_id)
    if position == DropPosition.AFTER:
        index += 1
    return _attach(forest, subtree, target.parent_id, index)


def reorder_roots(forest: Forest, from_index: int, to_index: int) -> Forest:
    """Move the top-level node at ``from_index`` to ``to_index``."""
    count = len(forest.roots)
    if not (0 <= from_index < count and 0 <= to_index < count) or from_index == to_index:
        return forest

    roots = list(forest.roots)
    moved = roots.pop(from_index)
    roots.insert(to_index, moved)
    return forest.model_copy(update={"roots": roots})


# =============================================================================
# Property updates
# =============================================================================


def replace_properties(forest: Forest, node_id: str, properties: dict[str, Any]) -> Forest:
    """Replace a node's base properties wholesale (overrides and children untouched)."""
    node = forest.nodes.get(node_id)
    if node is None:
        return forest

    nodes = dict(forest.nodes)
    nodes[node_id] = node.model_copy(update={"base_properties": dict(properties)})
    return forest.model_copy(update={"nodes": nodes})


def merge_breakpoint_override(
    forest: Forest, node_id: str, breakpoint_id: str, partial: dict[str, Any]
) -> Forest:
    """Shallow-merge ``partial`` into one breakpoint's override layer."""
    node = forest.nodes.get(node_id)
    if node is None:
        return forest

    overrides = dict(node.breakpoint_overrides)
    overrides[breakpoint_id] = {**overrides.get(breakpoint_id, {}), **partial}

    nodes = dict(forest.nodes)
    nodes[node_id] = node.model_copy(update={"breakpoint_overrides": overrides})
    return forest.model_copy(update={"nodes": nodes})


# =============================================================================
# Cloning and integrity
# =============================================================================


def clone_with_fresh_ids(subtree: Subtree, id_factory: Callable[[], str] = new_component_id) -> Subtree:
    """
    Copy a subtree, minting a new id for every node in it.

    Property values are deep-copied; metadata is shared (it is immutable).
    """
    mapping = {old_id: id_factory() for old_id in subtree.nodes}

    nodes: dict[str, ComponentNode] = {}
    for old_id, node in subtree.nodes.items():
        new_id = mapping[old_id]
        nodes[new_id] = node.model_copy(
            update={
                "id": new_id,
                "base_properties": copy.deepcopy(node.base_properties),
                "breakpoint_overrides": copy.deepcopy(node.breakpoint_overrides),
                "children": [mapping[c] for c in node.children if c in mapping],
                "parent_id": None if old_id == subtree.root_id else mapping.get(node.parent_id),
            }
        )
    return Subtree(root_id=mapping[subtree.root_id], nodes=nodes)


def check_integrity(forest: Forest) -> list[str]:
    """
    List violations of the forest invariants (empty when consistent).

    Checks parent/child agreement, single reachability and that every
    arena entry is reachable from a root.
    """
    problems: list[str] = []
    reached: dict[str, int] = {}

    def visit(node_id: str, parent_id: str | None, path: set[str]) -> None:
        node = forest.nodes.get(node_id)
        if node is None:
            problems.append(f"dangling reference to {node_id}")
            return
        if node_id in path:
            problems.append(f"cycle through {node_id}")
            return
        reached[node_id] = reached.get(node_id, 0) + 1
        if node.parent_id != parent_id:
            problems.append(f"{node_id} has parent_id {node.parent_id}, expected {parent_id}")
        for child_id in node.children:
            visit(child_id, node_id, path | {node_id})

    for root_id in forest.roots:
        visit(root_id, None, set())

    for node_id, count in reached.items():
        if count > 1:
            problems.append(f"{node_id} reachable from {count} places")
    for node_id in forest.nodes:
        if node_id not in reached:
            problems.append(f"{node_id} is not reachable from any root")

    return problems
