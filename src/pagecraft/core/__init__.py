"""Core utilities and infrastructure."""

from .config import Settings, get_settings
from .validate import (
    ValidationError,
    ValidationResult,
    EndpointRequest,
    DocumentValidator,
    validate_document,
)
from .logging_config import configure_logging, configure_from_settings, get_logger, LogContext
from .json import (
    parse_json_value,
    safe_json_dumps,
    JSONParseError,
    validate_json_depth,
)
from .hash import hash_string, hash_bytes
from .cache import LRUCache, Stats


def create_container(settings: Settings | None = None):
    """Create dependency injection container (lazy import to avoid circular deps)."""
    from .container import create_container as _create_container

    return _create_container(settings)


__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Validation
    "ValidationError",
    "ValidationResult",
    "EndpointRequest",
    "DocumentValidator",
    "validate_document",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "LogContext",
    # JSON
    "parse_json_value",
    "safe_json_dumps",
    "JSONParseError",
    "validate_json_depth",
    # DI
    "create_container",
    # Hashing
    "hash_string",
    "hash_bytes",
    # Caching
    "LRUCache",
    "Stats",
]
