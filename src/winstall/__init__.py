"""Catalog-driven interactive software installer for Windows."""

__version__ = "0.1.0"

# Export protocol interfaces for type hints and dependency injection
from winstall.protocols import (
    CatalogRepository,
    DiscoveryClient,
    InstallDispatcher,
    InventorySource,
    LogSink,
)

__all__ = [
    "__version__",
    "CatalogRepository",
    "DiscoveryClient",
    "InstallDispatcher",
    "InventorySource",
    "LogSink",
]
