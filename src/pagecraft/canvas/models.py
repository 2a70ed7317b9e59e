"""Canvas Document Models.

The canvas document is an arena: every placed component lives in
``Forest.nodes`` keyed by id, children are ordered id lists and
``parent_id`` is a plain lookup field. All models are frozen; tree
operations build new instances instead of mutating.
"""

from enum import Enum
from typing import Any, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.validate import ValidationError


class ComponentKind(str, Enum):
    """Whether a component's children take part in layout."""

    LEAF = "leaf"
    CONTAINER = "container"


class PropertyKind(str, Enum):
    """Declared type of a component property."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"
    OBJECT = "object"


class PropertyType(BaseModel):
    """Type descriptor for one property in a component's schema."""

    model_config = ConfigDict(frozen=True)

    kind: PropertyKind
    options: tuple[str, ...] = ()

    @classmethod
    def parse(cls, descriptor: "str | dict[str, Any] | PropertyType") -> "PropertyType":
        """
        Parse a schema descriptor.

        Accepts ``"string"``, ``"number"``, ``"boolean"``, ``"array"``,
        ``"object"``, ``"a | b | c"`` (enum) or a ``{"kind": ..., "options": [...]}``
        mapping.

        Raises:
            ValidationError: If the descriptor is not understood
        """
        if isinstance(descriptor, PropertyType):
            return descriptor

        if isinstance(descriptor, dict):
            return cls.model_validate(descriptor)

        if not isinstance(descriptor, str):
            raise ValidationError(f"Unsupported property descriptor: {descriptor!r}")

        if "|" in descriptor:
            options = tuple(opt.strip() for opt in descriptor.split("|") if opt.strip())
            return cls(kind=PropertyKind.ENUM, options=options)

        try:
            return cls(kind=PropertyKind(descriptor.strip().lower()))
        except ValueError as e:
            raise ValidationError(f"Unknown property type: {descriptor!r}") from e

    def describe(self) -> str:
        """Descriptor string form (inverse of ``parse``)."""
        if self.kind == PropertyKind.ENUM:
            return " | ".join(self.options)
        return self.kind.value


class ComponentMetadata(BaseModel):
    """Catalog-provided, plain-data descriptor of a component type."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    category: str | None = None
    kind: ComponentKind = ComponentKind.LEAF
    property_schema: dict[str, PropertyType] = Field(default_factory=dict)
    initial_values: dict[str, Any] = Field(default_factory=dict)

    @field_validator("property_schema", mode="before")
    @classmethod
    def parse_schema(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {name: PropertyType.parse(desc) for name, desc in v.items()}
        return v

    @property
    def is_container(self) -> bool:
        return self.kind == ComponentKind.CONTAINER

    def declared_type(self, prop: str) -> PropertyKind | None:
        """Declared kind of a property, or None when the schema is silent."""
        prop_type = self.property_schema.get(prop)
        return prop_type.kind if prop_type else None


class ComponentNode(BaseModel):
    """A placed component instance."""

    model_config = ConfigDict(frozen=True)

    id: str
    metadata: ComponentMetadata
    library: str = "general"
    base_properties: dict[str, Any] = Field(default_factory=dict)
    breakpoint_overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)
    children: list[str] = Field(default_factory=list)
    parent_id: str | None = None

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_container(self) -> bool:
        return self.metadata.is_container


class Subtree(BaseModel):
    """A detached node together with every node beneath it."""

    model_config = ConfigDict(frozen=True)

    root_id: str
    nodes: dict[str, ComponentNode]

    @property
    def root(self) -> ComponentNode:
        return self.nodes[self.root_id]

    def ids(self) -> set[str]:
        return set(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)


class Forest(BaseModel):
    """The canvas document: top-level trees over an id-keyed node arena."""

    model_config = ConfigDict(frozen=True)

    nodes: dict[str, ComponentNode] = Field(default_factory=dict)
    roots: list[str] = Field(default_factory=list)

    def get(self, node_id: str) -> ComponentNode | None:
        return self.nodes.get(node_id)

    def root_nodes(self) -> Iterator[ComponentNode]:
        for node_id in self.roots:
            yield self.nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)


class Breakpoint(BaseModel):
    """A named responsive viewport profile."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    category: Literal["mobile", "tablet", "desktop"]
