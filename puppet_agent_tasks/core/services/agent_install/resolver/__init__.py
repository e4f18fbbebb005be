"""
L2 Resolver — ``__init__.py`` re-exports catalogs and version resolution.
"""

from puppet_agent_tasks.core.services.agent_install.resolver.catalog import (  # noqa: F401
    Catalog,
    CatalogEntry,
    FileCatalog,
    HttpCatalog,
    catalog_from_settings,
)
from puppet_agent_tasks.core.services.agent_install.resolver.version_source import (  # noqa: F401
    resolve,
)
