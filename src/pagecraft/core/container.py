"""Dependency Injection Container."""

from injector import Injector, Module, provider, singleton

from ..binding import configure_template_cache
from ..canvas.engine import CanvasEngine
from ..canvas.persistence import CanvasStorage, JsonFileStorage
from ..catalog import MetadataCatalog, register_general_elements
from ..clients.datasources import DataSourceRegistry
from .config import Settings, get_settings
from .logging_config import configure_from_settings


class CoreModule(Module):
    """Core dependencies."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @singleton
    @provider
    def provide_settings(self) -> Settings:
        """Provide application settings."""
        return self.settings

    @singleton
    @provider
    def provide_catalog(self, settings: Settings) -> MetadataCatalog:
        """Provide component catalog with the general elements registered."""
        catalog = MetadataCatalog(default_library=settings.default_library)
        register_general_elements(catalog)
        return catalog

    @singleton
    @provider
    def provide_datasources(self, settings: Settings) -> DataSourceRegistry:
        """Provide data-source registry."""
        return DataSourceRegistry(
            timeout=settings.datasource_timeout,
            fail_max=settings.breaker_fail_max,
            reset_timeout=settings.breaker_reset_timeout,
        )

    @singleton
    @provider
    def provide_storage(self, settings: Settings, catalog: MetadataCatalog) -> CanvasStorage:
        """Provide file-backed canvas storage."""
        return CanvasStorage(
            JsonFileStorage(settings.storage_dir),
            catalog=catalog,
            max_depth=settings.max_document_depth,
        )

    @singleton
    @provider
    def provide_engine(self, settings: Settings, catalog: MetadataCatalog) -> CanvasEngine:
        """Provide canvas engine."""
        return CanvasEngine(catalog=catalog, max_depth=settings.max_document_depth)


def create_container(settings: Settings | None = None) -> Injector:
    """Create configured injector."""
    module = CoreModule(settings)
    configure_from_settings(module.settings)
    configure_template_cache(module.settings.template_cache_size)
    return Injector([module])
