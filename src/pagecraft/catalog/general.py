"""Built-in general elements library."""

from typing import Any

from pydantic import BaseModel, Field

from ..canvas.models import ComponentKind, ComponentMetadata
from .registry import MetadataCatalog, Renderer

GENERAL_LIBRARY = "general"

STYLE_SCHEMA = {
    "display": "block | flex | grid | inline | inline-block | none",
    "width": "string",
    "height": "string",
    "padding": "string",
    "margin": "string",
    "backgroundColor": "string",
    "border": "string",
    "borderRadius": "string",
}


class RenderedElement(BaseModel):
    """Render output of a general element."""

    type: str = Field(..., description="Element tag")
    props: dict[str, Any] = Field(default_factory=dict)
    children: list[Any] = Field(default_factory=list)


GENERAL_ELEMENTS: list[ComponentMetadata] = [
    ComponentMetadata(
        name="Div",
        description="Generic block container",
        category="layout",
        kind=ComponentKind.CONTAINER,
        property_schema={**STYLE_SCHEMA, "justifyContent": "flex-start | center | flex-end | space-between"},
        initial_values={"display": "block", "padding": "8px"},
    ),
    ComponentMetadata(
        name="Form",
        description="Form container",
        category="layout",
        kind=ComponentKind.CONTAINER,
        property_schema={**STYLE_SCHEMA, "action": "string", "method": "get | post"},
        initial_values={"method": "post"},
    ),
    ComponentMetadata(
        name="Span",
        description="Inline text",
        category="text",
        property_schema={"text": "string", "color": "string"},
        initial_values={"text": "Text"},
    ),
    ComponentMetadata(
        name="Label",
        description="Form label",
        category="text",
        property_schema={"text": "string", "htmlFor": "string"},
        initial_values={"text": "Label"},
    ),
    ComponentMetadata(
        name="Button",
        description="Clickable button",
        category="input",
        property_schema={
            "text": "string",
            "type": "button | submit | reset",
            "disabled": "boolean",
        },
        initial_values={"text": "Button", "type": "button", "disabled": False},
    ),
    ComponentMetadata(
        name="Input",
        description="Text input field",
        category="input",
        property_schema={
            "value": "string",
            "placeholder": "string",
            "type": "text | number | email | password",
            "disabled": "boolean",
            "required": "boolean",
        },
        initial_values={"value": "", "placeholder": "", "type": "text", "disabled": False, "required": False},
    ),
]


def element_renderer(tag: str) -> Renderer:
    """Renderer producing a RenderedElement for an HTML tag."""

    def render(props: dict[str, Any], children: list[Any]) -> RenderedElement:
        # Empty style values are dropped
        return RenderedElement(
            type=tag,
            props={k: v for k, v in props.items() if v is not None and v != ""},
            children=children,
        )

    return render


GENERAL_RENDERERS: dict[str, Renderer] = {
    meta.name: element_renderer(meta.name.lower()) for meta in GENERAL_ELEMENTS
}


def register_general_elements(catalog: MetadataCatalog) -> int:
    """Register the built-in library; returns how many types were added."""
    return catalog.register_library(GENERAL_LIBRARY, GENERAL_ELEMENTS, GENERAL_RENDERERS)
