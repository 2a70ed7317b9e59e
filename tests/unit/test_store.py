"""Tests for the pure forest operations."""

import pytest
from hypothesis import given, settings as hsettings, strategies as st

from pagecraft.canvas import store
from pagecraft.canvas.dnd import DropPosition
from pagecraft.canvas.models import ComponentKind, ComponentMetadata, ComponentNode, Forest, Subtree


BOX = ComponentMetadata(name="Box", kind=ComponentKind.CONTAINER)
TEXT = ComponentMetadata(name="Text", initial_values={"text": "hi"})


def single(node_id, metadata=TEXT, **props):
    node = ComponentNode(id=node_id, metadata=metadata, base_properties=props)
    return Subtree(root_id=node_id, nodes={node_id: node})


def build_forest(steps):
    """Grow a forest from (is_container, parent_pick) steps."""
    forest = Forest()
    containers: list[str] = []
    for i, (is_container, pick) in enumerate(steps):
        node_id = f"n{i}"
        subtree = single(node_id, BOX if is_container else TEXT)
        slot = pick % (len(containers) + 1)
        if slot == len(containers):
            forest = store.insert_at_root_end(forest, subtree)
        else:
            forest = store.insert_into_container(forest, containers[slot], subtree)
        if is_container:
            containers.append(node_id)
    return forest


forest_steps = st.lists(st.tuples(st.booleans(), st.integers(min_value=0, max_value=50)), min_size=1, max_size=25)


@pytest.mark.unit
class TestSearch:
    """Find, walk and ancestry helpers."""

    def test_walk_is_depth_first_document_order(self, sample_forest):
        assert [n.id for n in store.walk(sample_forest)] == ["A", "B", "C", "D", "E"]

    def test_walk_from_subtree(self, sample_forest):
        assert [n.id for n in store.walk(sample_forest, "B")] == ["B", "C"]

    def test_find_nested(self, sample_forest):
        assert store.find(sample_forest, "C").base_properties == {"text": "c"}

    def test_find_missing(self, sample_forest):
        assert store.find(sample_forest, "zzz") is None

    def test_find_parent(self, sample_forest):
        assert store.find_parent(sample_forest, "C").id == "B"
        assert store.find_parent(sample_forest, "A") is None

    def test_is_descendant(self, sample_forest):
        assert store.is_descendant(sample_forest, "A", "C")
        assert not store.is_descendant(sample_forest, "C", "A")
        assert not store.is_descendant(sample_forest, "A", "A")
        assert not store.is_descendant(sample_forest, "B", "E")

    def test_subtree_ids(self, sample_forest):
        assert store.subtree_ids(sample_forest, "A") == ["A", "B", "C", "D"]


@pytest.mark.unit
class TestRemove:
    """Detaching subtrees."""

    def test_remove_nested_keeps_sibling_order(self, sample_forest):
        removed, forest = store.remove(sample_forest, "B")

        assert removed.ids() == {"B", "C"}
        assert removed.root.parent_id is None
        assert forest.nodes["A"].children == ["D"]
        assert store.check_integrity(forest) == []

    def test_remove_root(self, sample_forest):
        removed, forest = store.remove(sample_forest, "A")

        assert removed.ids() == {"A", "B", "C", "D"}
        assert forest.roots == ["E"]
        assert set(forest.nodes) == {"E"}

    def test_remove_missing_returns_same_forest(self, sample_forest):
        removed, forest = store.remove(sample_forest, "nope")

        assert removed is None
        assert forest is sample_forest

    def test_input_not_mutated(self, sample_forest):
        store.remove(sample_forest, "B")
        assert sample_forest.nodes["A"].children == ["B", "D"]
        assert "C" in sample_forest


@pytest.mark.unit
class TestInsert:
    """Insertion variants."""

    def test_insert_into_container_appends(self, sample_forest):
        forest = store.insert_into_container(sample_forest, "A", single("X"))

        assert forest.nodes["A"].children == ["B", "D", "X"]
        assert forest.nodes["X"].parent_id == "A"

    def test_insert_into_missing_container_is_noop(self, sample_forest):
        assert store.insert_into_container(sample_forest, "nope", single("X")) is sample_forest

    def test_insert_at_root_end(self, sample_forest):
        forest = store.insert_at_root_end(sample_forest, single("X"))
        assert forest.roots == ["A", "E", "X"]
        assert forest.nodes["X"].parent_id is None

    def test_insert_before_nested_target(self, sample_forest):
        forest = store.insert_relative(sample_forest, "D", single("X"), DropPosition.BEFORE)

        assert forest.nodes["A"].children == ["B", "X", "D"]
        assert forest.nodes["X"].parent_id == "A"

    def test_insert_after_root_target(self, sample_forest):
        forest = store.insert_relative(sample_forest, "A", single("X"), "after")
        assert forest.roots == ["A", "X", "E"]

    def test_insert_relative_missing_target(self, sample_forest):
        assert store.insert_relative(sample_forest, "nope", single("X"), "before") is sample_forest

    def test_insert_with_colliding_ids_rejected(self, sample_forest):
        assert store.insert_at_root_end(sample_forest, single("C")) is sample_forest

    def test_reorder_roots(self, sample_forest):
        forest = store.reorder_roots(sample_forest, 1, 0)
        assert forest.roots == ["E", "A"]

    def test_reorder_out_of_range(self, sample_forest):
        assert store.reorder_roots(sample_forest, 0, 9) is sample_forest


@pytest.mark.unit
class TestPropertyUpdates:
    """Base replacement and override merging."""

    def test_replace_properties_wholesale(self, sample_forest):
        forest = store.replace_properties(sample_forest, "C", {"color": "red"})

        assert forest.nodes["C"].base_properties == {"color": "red"}
        assert sample_forest.nodes["C"].base_properties == {"text": "c"}

    def test_replace_keeps_overrides(self, sample_forest):
        forest = store.merge_breakpoint_override(sample_forest, "C", "mobile", {"text": "m"})
        forest = store.replace_properties(forest, "C", {"text": "x"})

        assert forest.nodes["C"].breakpoint_overrides == {"mobile": {"text": "m"}}

    def test_merge_override_is_shallow_merge(self, sample_forest):
        forest = store.merge_breakpoint_override(sample_forest, "C", "mobile", {"a": 1})
        forest = store.merge_breakpoint_override(forest, "C", "mobile", {"b": 2})

        assert forest.nodes["C"].breakpoint_overrides == {"mobile": {"a": 1, "b": 2}}

    def test_missing_id_is_noop(self, sample_forest):
        assert store.replace_properties(sample_forest, "nope", {}) is sample_forest
        assert store.merge_breakpoint_override(sample_forest, "nope", "mobile", {}) is sample_forest


@pytest.mark.unit
class TestClone:
    """Fresh-id cloning."""

    def test_clone_has_disjoint_ids_and_same_shape(self, sample_forest):
        subtree = store.extract_subtree(sample_forest, "A", deep=True)
        clone = store.clone_with_fresh_ids(subtree)

        assert clone.ids().isdisjoint(subtree.ids())
        assert len(clone) == len(subtree)
        assert clone.root.parent_id is None
        assert len(clone.root.children) == 2

    def test_clone_deep_copies_properties(self, node_factory):
        node = node_factory("X", TEXT, items=[1, 2])
        clone = store.clone_with_fresh_ids(Subtree(root_id="X", nodes={"X": node}))

        clone.root.base_properties["items"].append(3)
        assert node.base_properties["items"] == [1, 2]


@pytest.mark.unit
class TestForestProperties:
    """Invariants that hold for arbitrary forests."""

    @given(forest_steps)
    @hsettings(max_examples=50)
    def test_built_forest_is_consistent(self, steps):
        forest = build_forest(steps)
        assert store.check_integrity(forest) == []
        assert len(forest) == len(steps)

    @given(forest_steps, st.integers(min_value=0, max_value=50))
    @hsettings(max_examples=50)
    def test_remove_then_reinsert_preserves_ids(self, steps, pick):
        forest = build_forest(steps)
        target = sorted(forest.nodes)[pick % len(forest)]

        removed, remaining = store.remove(forest, target)

        assert removed.ids().isdisjoint(remaining.nodes)
        assert store.check_integrity(remaining) == []

        restored = store.insert_at_root_end(remaining, removed)
        assert set(restored.nodes) == set(forest.nodes)
        assert store.check_integrity(restored) == []

    @given(forest_steps, st.integers(min_value=0, max_value=50))
    @hsettings(max_examples=50)
    def test_cloned_subtree_inserts_cleanly(self, steps, pick):
        forest = build_forest(steps)
        target = sorted(forest.nodes)[pick % len(forest)]

        clone = store.clone_with_fresh_ids(store.extract_subtree(forest, target, deep=True))
        pasted = store.insert_at_root_end(forest, clone)

        assert pasted is not forest
        assert len(pasted) == len(forest) + len(clone)
        assert store.check_integrity(pasted) == []


@pytest.mark.unit
class TestDepth:
    """Nesting measurements."""

    def test_depth_of(self, sample_forest):
        assert store.depth_of(sample_forest, "A") == 1
        assert store.depth_of(sample_forest, "C") == 3
        assert store.depth_of(sample_forest, "missing") == 0

    def test_subtree_height(self, sample_forest):
        assert store.subtree_height(store.extract_subtree(sample_forest, "A")) == 3
        assert store.subtree_height(store.extract_subtree(sample_forest, "E")) == 1
