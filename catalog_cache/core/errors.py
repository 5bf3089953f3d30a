"""Error taxonomy for the catalog cache.

Storage faults are recovered locally as cache misses; remote faults surface
as rejected loads. Version mismatches and reads before the first load are
not errors at all.
"""

from __future__ import annotations


class CatalogCacheError(RuntimeError):
    """Base class for catalog cache errors."""


class StorageFault(CatalogCacheError):
    """Raised by key-value backends (quota exceeded, connection lost)."""


class RemoteFault(CatalogCacheError):
    """Raised when the remote catalog source fails (network, timeout, bad payload)."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message


__all__ = ["CatalogCacheError", "RemoteFault", "StorageFault"]
