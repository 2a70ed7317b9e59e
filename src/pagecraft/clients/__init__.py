"""External service clients."""

from .datasources import ApiEndpoint, ApiResponse, DataSourceRegistry

__all__ = ["ApiEndpoint", "ApiResponse", "DataSourceRegistry"]
