"""
Template binding: resolves {{source.path}} expressions against data sources.
"""

from .sources import DataSourceAccessor, EmptyDataSources, StaticDataSources
from .template import (
    coerce_value,
    component_template_bindings,
    configure_template_cache,
    extract_template_variables,
    has_template_bindings,
    resolve_properties,
    resolve_template,
)

__all__ = [
    "DataSourceAccessor",
    "EmptyDataSources",
    "StaticDataSources",
    "coerce_value",
    "component_template_bindings",
    "configure_template_cache",
    "extract_template_variables",
    "has_template_bindings",
    "resolve_properties",
    "resolve_template",
]
