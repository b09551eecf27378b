"""Module-level engine management for the SQLAlchemy store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event

from tienda.config.storage import get_database_config

from .tables import create_all_tables

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Initialise the SQLAlchemy engine and create missing tables."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy store already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        config = get_database_config()
        engine = build_engine(database_uri or config.uri, echo=config.echo)
    create_all_tables(engine)
    _STATE.engine = engine
    return engine


def build_engine(database_uri: str, **engine_options: Any) -> Engine:
    engine = create_engine(database_uri, **engine_options)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection: object, connection_record: object) -> None:
    _ = connection_record
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def require_engine() -> Engine:
    if _STATE.engine is None:
        raise StartupError(
            "SQLAlchemy store not initialised. Call tienda.adapters.sqlalchemy.startup() "
            "before using the store."
        )
    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
