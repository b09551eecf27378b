"""Domain port definitions for adapters."""

from __future__ import annotations

from .catalog import CatalogReference
from .store import Collection, Filter, FilterOp, Row, StoreClient

__all__ = [
    "CatalogReference",
    "Collection",
    "Filter",
    "FilterOp",
    "Row",
    "StoreClient",
]
