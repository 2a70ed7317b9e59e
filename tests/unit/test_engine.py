"""Tests for the canvas mutation engine."""

import pytest

from pagecraft.canvas import store
from pagecraft.canvas.dnd import DropPosition, Rect
from pagecraft.canvas.engine import CanvasEngine
from pagecraft.catalog import RenderedElement


@pytest.fixture
def loaded(engine, sample_forest):
    """Engine holding the sample forest (A[B[C], D], E)."""
    engine.load(sample_forest)
    return engine


@pytest.mark.unit
class TestAdd:
    """Adding components."""

    def test_add_to_root_selects_new_node(self, engine, leaf_meta):
        node = engine.add_component(leaf_meta)

        assert node.id == "cmp_1"
        assert engine.forest.roots == ["cmp_1"]
        assert engine.selected_id == "cmp_1"
        assert node.base_properties == {"text": "Hello", "visible": True, "align": "left"}

    def test_initial_values_are_copied(self, engine):
        node = engine.add_component("Div")
        catalog_defaults = engine.catalog.lookup_by_name("Div").initial_values

        assert node.base_properties == catalog_defaults
        assert node.base_properties is not catalog_defaults
        assert node.library == "general"

    def test_add_into_container(self, loaded, leaf_meta):
        node = loaded.add_component_to_container("B", leaf_meta)

        assert loaded.forest.nodes["B"].children == ["C", node.id]
        assert node.parent_id == "B"
        assert loaded.selected_id == node.id

    def test_add_into_leaf_rejected(self, loaded, leaf_meta):
        before = loaded.forest
        assert loaded.add_component(leaf_meta, parent_id="C") is None
        assert loaded.forest is before

    def test_add_into_missing_parent_rejected(self, loaded, leaf_meta):
        assert loaded.add_component(leaf_meta, parent_id="nope") is None

    def test_add_unknown_catalog_name_rejected(self, engine):
        assert engine.add_component("Nope") is None
        assert len(engine.forest) == 0


@pytest.mark.unit
class TestMove:
    """Top-level reorder and reparent."""

    def test_move_within_sibling_list(self, loaded):
        assert loaded.move_within_sibling_list(0, 1)
        assert loaded.forest.roots == ["E", "A"]
        assert loaded.selected_id == "A"

    def test_move_out_of_range_is_noop(self, loaded):
        before = loaded.forest
        assert not loaded.move_within_sibling_list(0, 5)
        assert loaded.forest is before

    def test_reparent_inside_container(self, loaded):
        assert loaded.reparent("E", "B", DropPosition.INSIDE)

        assert loaded.forest.roots == ["A"]
        assert loaded.forest.nodes["B"].children == ["C", "E"]
        assert loaded.forest.nodes["E"].parent_id == "B"
        assert store.check_integrity(loaded.forest) == []

    def test_reparent_before_nested(self, loaded):
        assert loaded.reparent("E", "D", "before")
        assert loaded.forest.nodes["A"].children == ["B", "E", "D"]

    def test_reparent_out_to_root(self, loaded):
        assert loaded.reparent("C", "E", "after")
        assert loaded.forest.roots == ["A", "E", "C"]
        assert loaded.forest.nodes["B"].children == []

    def test_reparent_into_own_descendant_rejected(self, loaded):
        before = loaded.forest
        assert not loaded.reparent("A", "B", "inside")
        assert loaded.forest is before

    def test_reparent_onto_self_rejected(self, loaded):
        before = loaded.forest
        assert not loaded.reparent("B", "B", "inside")
        assert loaded.forest is before

    def test_reparent_inside_leaf_rejected(self, loaded):
        before = loaded.forest
        assert not loaded.reparent("E", "C", "inside")
        assert loaded.forest is before

    def test_reparent_missing_rejected(self, loaded):
        assert not loaded.reparent("nope", "A", "inside")
        assert not loaded.reparent("E", "nope", "before")


@pytest.mark.unit
class TestDelete:
    """Deleting subtrees."""

    def test_delete_removes_subtree_and_clears_selection(self, loaded):
        loaded.select_component("C")
        assert loaded.delete_component("B")

        assert "B" not in loaded.forest
        assert "C" not in loaded.forest
        assert loaded.selected_id is None

    def test_delete_missing_is_noop(self, loaded):
        before = loaded.forest
        assert not loaded.delete_component("nope")
        assert loaded.forest is before

    def test_delete_clears_hover_on_removed(self, loaded):
        loaded.set_container_hover("B", True)
        loaded.delete_component("A")
        assert loaded.root_drop_enabled


@pytest.mark.unit
class TestClipboard:
    """Copy and paste."""

    def test_paste_twice_gives_disjoint_ids(self, loaded):
        loaded.copy_component("A")
        first = loaded.paste_component()
        second = loaded.paste_component()

        first_ids = set(store.subtree_ids(loaded.forest, first))
        second_ids = set(store.subtree_ids(loaded.forest, second))
        original_ids = {"A", "B", "C", "D"}

        assert len(first_ids) == len(second_ids) == 4
        assert first_ids.isdisjoint(second_ids)
        assert first_ids.isdisjoint(original_ids)
        assert second_ids.isdisjoint(original_ids)
        assert store.check_integrity(loaded.forest) == []

    def test_paste_into_container_selects_target(self, loaded):
        loaded.copy_component("E")
        new_id = loaded.paste_component("B")

        assert loaded.forest.nodes["B"].children == ["C", new_id]
        assert loaded.selected_id == "B"

    def test_paste_on_leaf_goes_to_root_end(self, loaded):
        loaded.copy_component("D")
        new_id = loaded.paste_component("C")

        assert loaded.forest.roots[-1] == new_id
        assert loaded.selected_id == new_id

    def test_clipboard_is_a_value_copy(self, loaded):
        loaded.copy_component("C")
        loaded.apply_properties("C", {"text": "changed"})
        new_id = loaded.paste_component()

        assert loaded.forest.nodes[new_id].base_properties == {"text": "c"}

    def test_paste_with_empty_clipboard(self, loaded):
        assert loaded.paste_component() is None

    def test_shortcuts(self, loaded):
        loaded.select_component("E")

        assert loaded.handle_shortcut("c", ctrl=True)
        assert loaded.clipboard.root_id == "E"
        assert loaded.handle_shortcut("v", meta=True)
        assert len(loaded.forest.roots) == 3

    def test_shortcut_requires_modifier(self, loaded):
        loaded.select_component("E")
        assert not loaded.handle_shortcut("c")
        assert loaded.clipboard is None


@pytest.mark.unit
class TestSelection:
    """Selection helpers."""

    def test_select_parent(self, loaded):
        assert loaded.select_parent("C") == "B"
        assert loaded.selected_id == "B"

    def test_select_parent_of_root(self, loaded):
        loaded.select_component("E")
        assert loaded.select_parent("E") is None
        assert loaded.selected_id == "E"

    def test_selected_metadata(self, loaded, leaf_meta):
        loaded.select_component("C")
        assert loaded.selected_metadata == leaf_meta
        loaded.clear_selection()
        assert loaded.selected_node is None


@pytest.mark.unit
class TestProperties:
    """Property edits and breakpoint routing."""

    def test_update_property_goes_to_base_without_overrides(self, loaded):
        loaded.update_property("C", "text", "new")
        assert loaded.forest.nodes["C"].base_properties == {"text": "new"}

    def test_update_property_goes_to_active_layer_once_overridden(self, loaded):
        loaded.breakpoints.select("tablet")
        loaded.set_breakpoint_property("C", "mobile", "text", "small")
        loaded.update_property("C", "text", "medium")

        node = loaded.forest.nodes["C"]
        assert node.base_properties == {"text": "c"}
        assert node.breakpoint_overrides == {"mobile": {"text": "small"}, "tablet": {"text": "medium"}}

    def test_effective_properties_use_active_breakpoint(self, loaded):
        loaded.set_breakpoint_property("C", "mobile", "text", "small")

        loaded.breakpoints.select("desktop")
        assert loaded.effective_properties("C") == {"text": "c"}
        loaded.breakpoints.select("mobile")
        assert loaded.effective_properties("C") == {"text": "small"}

    def test_render_properties_resolves_bindings(self, loaded, data_sources):
        loaded.apply_properties(
            "C", {"text": "Hi {{user.name}}", "visible": "{{flags.missing}}", "align": "{{user.city}}"}
        )

        assert loaded.render_properties("C", data_sources) == {
            "text": "Hi Ada",
            "visible": False,
            "align": "{{user.city}}",
        }


@pytest.mark.unit
class TestDrop:
    """Pointer-driven drops."""

    def test_handle_drop_middle_of_container_goes_inside(self, loaded):
        position = loaded.handle_drop("E", "B", Rect(top=0, height=100), pointer_y=50)

        assert position == DropPosition.INSIDE
        assert loaded.forest.nodes["E"].parent_id == "B"

    def test_handle_drop_top_band_goes_before(self, loaded):
        position = loaded.handle_drop("E", "A", Rect(top=0, height=100), pointer_y=10)

        assert position == DropPosition.BEFORE
        assert loaded.forest.roots == ["E", "A"]

    def test_handle_drop_on_own_child_rejected(self, loaded):
        assert loaded.handle_drop("A", "C", Rect(top=0, height=100), pointer_y=90) is None

    def test_container_hover_controls_root_drop(self, loaded):
        assert loaded.root_drop_enabled
        loaded.set_container_hover("A", True)
        assert not loaded.root_drop_enabled
        loaded.set_container_hover("B", False)
        assert not loaded.root_drop_enabled
        loaded.set_container_hover("A", False)
        assert loaded.root_drop_enabled

    def test_drag_hover_dedupes(self, loaded):
        rect = Rect(top=0, height=100)
        first = loaded.drag_hover("A", rect, 50)
        repeat = loaded.drag_hover("A", rect, 55)
        moved = loaded.drag_hover("A", rect, 95)

        assert [e.entered for e in first] == [True]
        assert repeat == []
        assert [(e.position, e.entered) for e in moved] == [
            (DropPosition.INSIDE, False),
            (DropPosition.AFTER, True),
        ]


@pytest.mark.unit
class TestRender:
    """Rendering through catalog renderers."""

    def test_render_tree(self, catalog, data_sources):
        engine = CanvasEngine(catalog=catalog)
        div = engine.add_component("Div")
        engine.add_component("Span", parent_id=div.id)
        engine.apply_properties(engine.selected_id, {"text": "{{user.name}}"})

        rendered = engine.render(data_sources)

        assert len(rendered) == 1
        assert isinstance(rendered[0], RenderedElement)
        assert rendered[0].type == "div"
        assert rendered[0].children[0].props == {"text": "Ada"}


@pytest.mark.unit
class TestNestingLimit:
    """Edits never build a document too deep to load."""

    @pytest.fixture
    def shallow(self, catalog, id_factory):
        return CanvasEngine(catalog=catalog, id_factory=id_factory, max_depth=3)

    def build_chain(self, engine, levels):
        parent_id = None
        for _ in range(levels):
            parent_id = engine.add_component("Div", parent_id=parent_id).id
        return parent_id

    def test_add_beyond_limit_rejected(self, shallow):
        deepest = self.build_chain(shallow, 3)
        before = shallow.forest

        assert shallow.add_component("Span", parent_id=deepest) is None
        assert shallow.forest is before

    def test_reparent_counts_subtree_height(self, shallow):
        outer = self.build_chain(shallow, 2)
        pair = shallow.add_component("Div")
        shallow.add_component("Span", parent_id=pair.id)

        assert not shallow.reparent(pair.id, outer, "inside")
        assert shallow.reparent(pair.id, outer, "after")
        assert store.depth_of(shallow.forest, pair.id) == 2

    def test_paste_beyond_limit_goes_nowhere(self, shallow):
        deepest = self.build_chain(shallow, 2)
        shallow.copy_component(shallow.forest.roots[0])

        assert shallow.paste_component(deepest) is None
        assert shallow.paste_component() is not None
