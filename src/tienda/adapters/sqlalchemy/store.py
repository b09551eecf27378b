"""``StoreClient`` implementation on SQLAlchemy Core."""

from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from tienda.domain.errors import ProcedureNotFoundError, StoreError, StoreUnavailableError
from tienda.domain.ports import FilterOp, StoreClient

from .engine import require_engine
from .procedures import DEFAULT_PROCEDURES
from .tables import attach_embeds, table_for

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from sqlalchemy import ColumnElement, Table
    from sqlalchemy.engine import Engine

    from tienda.domain.ports import Filter, Row

    from .procedures import Procedure

log = getLogger(__name__)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        raise StoreError(
            f"{action}: constraint violated", code="integrity_error", details=str(exc.orig)
        ) from exc
    except OperationalError as exc:
        raise StoreUnavailableError(f"{action} failed: {exc.orig}", code="operational_error") from exc
    except SQLAlchemyError as exc:
        raise StoreError(f"{action} failed: {exc}", code=type(exc).__name__) from exc


def _column(table: Table, name: str) -> ColumnElement[object]:
    try:
        return table.c[name]
    except KeyError:
        raise StoreError(f"{table.name} has no column {name}", code="undefined_column") from None


def _conditions(table: Table, filters: Sequence[Filter]) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    for item in filters:
        column = _column(table, item.column)
        if item.op is FilterOp.IN:
            values = item.value if isinstance(item.value, tuple) else (item.value,)
            conditions.append(column.in_(values))
        elif item.value is None:
            conditions.append(column.is_(None))
        else:
            conditions.append(column == item.value)
    return conditions


class SqlAlchemyStoreClient:
    """Row operations and registered procedures against a relational database.

    Every call runs in its own transaction. Procedures run inside one
    transaction as a whole, which is what makes them atomic.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        procedures: Mapping[str, Procedure] = DEFAULT_PROCEDURES,
    ) -> None:
        self._engine = engine
        self._procedures = dict(procedures)

    @property
    def engine(self) -> Engine:
        return self._engine or require_engine()

    def select(
        self,
        collection: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        embed: Sequence[str] = (),
    ) -> list[Row]:
        table = table_for(collection)
        stmt = select(table).where(*_conditions(table, filters))
        if order_by is not None:
            stmt = stmt.order_by(_column(table, order_by))
        with _translate_errors(f"select {collection}"), self.engine.begin() as conn:
            rows = [dict(row._mapping) for row in conn.execute(stmt)]
            return attach_embeds(conn, collection, rows, embed)

    def insert(self, collection: str, rows: Sequence[Mapping[str, object]]) -> list[Row]:
        if not rows:
            return []
        table = table_for(collection)
        stmt = insert(table).returning(table, sort_by_parameter_order=True)
        with _translate_errors(f"insert {collection}"), self.engine.begin() as conn:
            return [dict(row._mapping) for row in conn.execute(stmt, [dict(row) for row in rows])]

    def update(
        self,
        collection: str,
        changes: Mapping[str, object],
        *,
        filters: Sequence[Filter],
        embed: Sequence[str] = (),
    ) -> list[Row]:
        if not filters:
            raise ValueError("refusing to update without filters")
        table = table_for(collection)
        for name in changes:
            _column(table, name)
        stmt = (
            update(table)
            .where(*_conditions(table, filters))
            .values(dict(changes))
            .returning(table)
        )
        with _translate_errors(f"update {collection}"), self.engine.begin() as conn:
            rows = [dict(row._mapping) for row in conn.execute(stmt)]
            return attach_embeds(conn, collection, rows, embed)

    def delete(self, collection: str, *, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValueError("refusing to delete without filters")
        table = table_for(collection)
        stmt = delete(table).where(*_conditions(table, filters)).returning(table)
        with _translate_errors(f"delete {collection}"), self.engine.begin() as conn:
            return [dict(row._mapping) for row in conn.execute(stmt)]

    def invoke(self, procedure: str, payload: Mapping[str, object]) -> object:
        func = self._procedures.get(procedure)
        if func is None:
            raise ProcedureNotFoundError(procedure)
        log.debug("Invoking procedure %s", procedure)
        with _translate_errors(f"procedure {procedure}"), self.engine.begin() as conn:
            return func(conn, payload)


if TYPE_CHECKING:
    _store_check: StoreClient = SqlAlchemyStoreClient()
