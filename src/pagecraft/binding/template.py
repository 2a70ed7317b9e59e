"""Template Binding Interpreter.

Resolves ``{{source.path.to.value}}`` expressions embedded in property
values against named data sources. The first path segment names the data
source; the rest walks into its cached JSON value.

Resolution is pure and idempotent: it reads whatever the accessor holds
right now and is meant to be re-run on every render pass.
"""

import math
import re
from typing import Any

from ..canvas.models import ComponentMetadata, PropertyKind
from ..core import get_logger, LRUCache
from ..core.json import JSONParseError, parse_json_value, safe_json_dumps
from .sources import DataSourceAccessor

logger = get_logger(__name__)

TEMPLATE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
WHOLE_TEMPLATE_PATTERN = re.compile(r"\{\{[^}]+\}\}")
NUMBER_PATTERN = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*", re.ASCII)

# (start, end, trimmed path) for each expression in a template string
Span = tuple[int, int, str]

_MISSING = object()
_parse_cache: LRUCache[tuple[Span, ...]] = LRUCache(max_size=512)


def configure_template_cache(max_size: int) -> None:
    """Resize the parsed-template cache."""
    _parse_cache.resize(max_size)


def parse_template(template: str) -> tuple[Span, ...]:
    """Locate every ``{{ path }}`` expression in a string."""
    return _parse_cache.get_or_set(
        template,
        lambda: tuple((m.start(), m.end(), m.group(1).strip()) for m in TEMPLATE_PATTERN.finditer(template)),
    )


def resolve_path(path: str, accessor: DataSourceAccessor) -> Any:
    """
    Resolve a dotted path against the data sources.

    Returns:
        The value, or the module's missing sentinel when the source is absent
        or any segment is missing or null.
    """
    source_name, *segments = path.split(".")
    if not source_name:
        return _MISSING

    try:
        current = accessor.get_value(source_name)
    except Exception as e:
        logger.warning("data_source_read_failed", source=source_name, error=str(e))
        return _MISSING

    if current is None:
        return _MISSING

    for key in segments:
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isascii() and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return _MISSING

    return _MISSING if current is None else current


def to_display_string(value: Any) -> str:
    """String form substituted into templates."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return safe_json_dumps(value)
    return str(value)


def coerce_value(text: str) -> Any:
    """
    Progressive coercion for a whole-string binding: number, then
    ``true``/``false``, then JSON; falls back to the text itself.
    """
    if NUMBER_PATTERN.fullmatch(text):
        stripped = text.strip()
        try:
            if any(ch in stripped for ch in ".eE"):
                number = float(stripped)
                if math.isfinite(number):
                    return number
            else:
                return int(stripped)
        except ValueError:
            # past the interpreter's int digit limit; no later step can parse it either
            return text

    if text == "true":
        return True
    if text == "false":
        return False

    try:
        return parse_json_value(text)
    except JSONParseError:
        return text


def resolve_template(
    value: Any,
    accessor: DataSourceAccessor,
    declared_type: PropertyKind | str | None = None,
) -> Any:
    """
    Substitute every binding in a string value.

    Unresolved expressions stay verbatim, except in boolean properties where
    they become ``false``. A value that is exactly one expression is coerced
    to a number, boolean or JSON value when possible. Non-strings pass
    through unchanged.
    """
    if not isinstance(value, str):
        return value

    spans = parse_template(value)
    if not spans:
        return value

    pieces: list[str] = []
    last = 0
    for start, end, path in spans:
        pieces.append(value[last:start])
        resolved = resolve_path(path, accessor)
        if resolved is not _MISSING:
            pieces.append(to_display_string(resolved))
        elif declared_type == PropertyKind.BOOLEAN:
            pieces.append("false")
        else:
            logger.debug("binding_unresolved", path=path)
            pieces.append(value[start:end])
        last = end
    pieces.append(value[last:])

    result = "".join(pieces)
    if result != value and WHOLE_TEMPLATE_PATTERN.fullmatch(value):
        return coerce_value(result)
    return result


def _resolve_nested(value: Any, accessor: DataSourceAccessor, declared: PropertyKind | None,
                    metadata: ComponentMetadata | None) -> Any:
    if isinstance(value, str):
        return resolve_template(value, accessor, declared)
    if isinstance(value, list):
        return [_resolve_nested(item, accessor, None, metadata) for item in value]
    if isinstance(value, dict):
        return resolve_properties(value, accessor, metadata)
    return value


def resolve_properties(
    properties: dict[str, Any],
    accessor: DataSourceAccessor,
    metadata: ComponentMetadata | None = None,
) -> dict[str, Any]:
    """
    Resolve bindings throughout a property mapping.

    Each key's declared type comes from the component's schema; nested
    objects and arrays are walked recursively.
    """
    return {
        key: _resolve_nested(value, accessor, metadata.declared_type(key) if metadata else None, metadata)
        for key, value in properties.items()
    }


def has_template_bindings(value: Any) -> bool:
    """Check whether a value is a string containing at least one binding."""
    return isinstance(value, str) and bool(parse_template(value))


def extract_template_variables(template: str) -> list[str]:
    """Data-source names referenced by a string, first-seen order, no duplicates."""
    variables: list[str] = []
    for _, _, path in parse_template(template):
        name = path.split(".")[0]
        if name not in variables:
            variables.append(name)
    return variables


def component_template_bindings(properties: dict[str, Any]) -> list[str]:
    """Every data-source name referenced anywhere in a property mapping."""
    found: list[str] = []

    def visit(value: Any) -> None:
        if isinstance(value, str):
            for name in extract_template_variables(value):
                if name not in found:
                    found.append(name)
        elif isinstance(value, list):
            for item in value:
                visit(item)
        elif isinstance(value, dict):
            for item in value.values():
                visit(item)

    visit(properties)
    return found
