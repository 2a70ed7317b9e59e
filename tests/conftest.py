"""Pytest configuration and fixtures."""

import os
import itertools

import pytest

from pagecraft.core import get_settings
from pagecraft.binding import StaticDataSources
from pagecraft.canvas.engine import CanvasEngine
from pagecraft.canvas.models import ComponentKind, ComponentMetadata, ComponentNode, Forest
from pagecraft.catalog import MetadataCatalog, register_general_elements


# ============================================================================
# Pytest Hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ["PAGECRAFT_LOG_LEVEL"] = "DEBUG"
    os.environ["PAGECRAFT_STORAGE_DIR"] = ".pagecraft-test"


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Test settings."""
    return get_settings()


@pytest.fixture
def catalog():
    """Catalog with the general elements registered."""
    catalog = MetadataCatalog()
    register_general_elements(catalog)
    return catalog


@pytest.fixture
def id_factory():
    """Deterministic id factory (cmp_1, cmp_2, ...)."""
    counter = itertools.count(1)
    return lambda: f"cmp_{next(counter)}"


@pytest.fixture
def engine(catalog, id_factory):
    """Canvas engine over an empty document."""
    return CanvasEngine(catalog=catalog, id_factory=id_factory)


# ============================================================================
# Metadata Fixtures
# ============================================================================

@pytest.fixture
def container_meta():
    """Container-kind metadata."""
    return ComponentMetadata(
        name="Box",
        kind=ComponentKind.CONTAINER,
        property_schema={"padding": "string"},
        initial_values={"padding": "8px"},
    )


@pytest.fixture
def leaf_meta():
    """Leaf-kind metadata with string, boolean and enum properties."""
    return ComponentMetadata(
        name="Text",
        property_schema={"text": "string", "visible": "boolean", "align": "left | center | right"},
        initial_values={"text": "Hello", "visible": True, "align": "left"},
    )


def make_node(node_id, metadata, children=(), parent_id=None, **props):
    """Build a node for hand-assembled forests."""
    return ComponentNode(
        id=node_id,
        metadata=metadata,
        base_properties=props,
        children=list(children),
        parent_id=parent_id,
    )


@pytest.fixture
def node_factory():
    """Factory for hand-assembled nodes."""
    return make_node


@pytest.fixture
def sample_forest(container_meta, leaf_meta):
    """
    Two top-level trees:

        A (container)
          B (container)
            C (leaf)
          D (leaf)
        E (leaf)
    """
    nodes = {
        "A": make_node("A", container_meta, children=["B", "D"]),
        "B": make_node("B", container_meta, children=["C"], parent_id="A"),
        "C": make_node("C", leaf_meta, parent_id="B", text="c"),
        "D": make_node("D", leaf_meta, parent_id="A", text="d"),
        "E": make_node("E", leaf_meta, text="e"),
    }
    return Forest(nodes=nodes, roots=["A", "E"])


# ============================================================================
# Data Source Fixtures
# ============================================================================

@pytest.fixture
def data_sources():
    """Static accessor with a user, a product list and a flag."""
    return StaticDataSources(
        {
            "user": {"name": "Ada", "age": 36, "active": True, "address": {"city": "London"}},
            "products": [{"title": "Lamp", "price": 19.0}, {"title": "Desk", "price": 149.5}],
            "flags": {"beta": False},
        }
    )
