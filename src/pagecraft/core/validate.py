"""Input validation with strong typing and the Result pattern."""

from dataclasses import dataclass
from typing import Any, Literal
from returns.result import Result, Success, Failure

from pydantic import BaseModel, Field, field_validator, ConfigDict

from .json import JSONParseError, validate_json_depth


# Validation limits
# Component nesting levels in a saved document
MAX_DOCUMENT_DEPTH = 64
# JSON levels a single property value may add below its component
MAX_PROPERTY_DEPTH = 32
MAX_VARIABLE_LENGTH = 64
MAX_URL_LENGTH = 2048

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


class ValidationError(Exception):
    """Validation failed."""

    pass


@dataclass(frozen=True)
class ValidationResult:
    """Validation error with details (for Result pattern)."""

    message: str
    field: str | None = None
    value: Any | None = None


class RequestValidator(BaseModel):
    """Base validator with strict configuration."""

    model_config = ConfigDict(
        strict=True, validate_assignment=True, extra="forbid", frozen=True  # Immutable by default
    )


class EndpointRequest(RequestValidator):
    """Validated data-source endpoint registration."""

    name: str = Field(min_length=1)
    variable: str = Field(min_length=1, max_length=MAX_VARIABLE_LENGTH)
    url: str = Field(min_length=1, max_length=MAX_URL_LENGTH)
    method: HttpMethod = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    is_active: bool = True

    @field_validator("variable")
    @classmethod
    def validate_variable(cls, v: str) -> str:
        """Variables are the first segment of a binding path, so no dots or braces."""
        stripped = v.strip()
        if not stripped or any(ch in stripped for ch in ".{} "):
            raise ValueError("Variable must be a single name without dots, braces or spaces")
        return stripped

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return stripped


class DocumentValidator:
    """Validates a decoded canvas document before it is rebuilt into a forest."""

    @staticmethod
    def validate(document: Any, max_depth: int = MAX_DOCUMENT_DEPTH) -> None:
        """
        Validate document structure.

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(document, (dict, list)):
            raise ValidationError(f"Document must be an object or list, got {type(document).__name__}")

        components = document if isinstance(document, list) else document.get("components")
        if components is None:
            raise ValidationError("Document missing required 'components' field")
        if not isinstance(components, list):
            raise ValidationError("Document 'components' must be a list")

        for index, item in enumerate(components):
            if not isinstance(item, dict):
                raise ValidationError(f"Component at index {index} must be an object")

        nesting = DocumentValidator.component_depth(components)
        if nesting > max_depth:
            raise ValidationError(f"Component nesting depth {nesting} exceeds maximum {max_depth}")

        # each component level is an object plus its children list
        try:
            validate_json_depth(document, 2 * max_depth + 2 + MAX_PROPERTY_DEPTH)
        except JSONParseError as e:
            raise ValidationError(str(e)) from e

    @staticmethod
    def component_depth(components: list[Any]) -> int:
        """Deepest component nesting level; top-level components are level 1."""
        deepest = 0
        stack = [(item, 1) for item in components]
        while stack:
            item, level = stack.pop()
            if not isinstance(item, dict):
                continue
            deepest = max(deepest, level)
            children = item.get("children")
            if isinstance(children, list):
                stack.extend((child, level + 1) for child in children)
        return deepest


def validate_document(document: Any, max_depth: int = MAX_DOCUMENT_DEPTH) -> Result[None, ValidationResult]:
    """
    Validate a canvas document (Result pattern version).

    Returns:
        Success(None) or Failure(ValidationResult)
    """
    try:
        DocumentValidator.validate(document, max_depth)
        return Success(None)
    except ValidationError as e:
        return Failure(ValidationResult(str(e)))
