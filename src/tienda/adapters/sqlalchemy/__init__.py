"""SQLAlchemy store adapter for tienda."""

from __future__ import annotations

from .engine import (
    StartupError,
    build_engine,
    configured_engine,
    is_started,
    require_engine,
    shutdown,
    startup,
)
from .procedures import DEFAULT_PROCEDURES, Procedure
from .store import SqlAlchemyStoreClient
from .tables import TABLES, create_all_tables, metadata

__all__ = [
    "DEFAULT_PROCEDURES",
    "TABLES",
    "Procedure",
    "SqlAlchemyStoreClient",
    "StartupError",
    "build_engine",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "require_engine",
    "shutdown",
    "startup",
]
