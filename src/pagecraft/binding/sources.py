"""Data-source accessor contract used by template binding."""

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class DataSourceAccessor(Protocol):
    """Read-only view of the currently cached value of each named data source."""

    def get_value(self, source_name: str) -> Any | None:
        """Return the cached JSON value for a source, or None if absent/unfetched/failed."""
        ...


class StaticDataSources:
    """Accessor over a fixed mapping (previews, tests, server-side rendering)."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values = dict(values or {})

    def get_value(self, source_name: str) -> Any | None:
        return self._values.get(source_name)

    def set_value(self, source_name: str, value: Any) -> None:
        self._values[source_name] = value

    def __contains__(self, source_name: object) -> bool:
        return source_name in self._values


class EmptyDataSources:
    """Accessor with no sources; every binding is unresolved."""

    def get_value(self, source_name: str) -> Any | None:
        return None
