"""Recording in-memory ``StoreClient`` with fault injection for tests."""

from __future__ import annotations

import copy
import itertools
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tienda.domain.errors import ProcedureNotFoundError, StoreError
from tienda.domain.ports import Collection, FilterOp

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping, Sequence

    from tienda.domain.ports import Filter, Row

    type FakeProcedure = Callable[[InMemoryStore, Mapping[str, object]], object]


@dataclass(frozen=True, slots=True)
class StoreCall:
    method: str
    target: str
    payload: object = None
    filters: tuple[Filter, ...] = ()


@dataclass(slots=True)
class Fault:
    method: str
    target: str | None
    error: StoreError
    skip: int = 0
    times: int = 1

    def matches(self, method: str, target: str) -> bool:
        return self.method == method and (self.target is None or self.target == target)


@dataclass(frozen=True, slots=True)
class _Relation:
    target: str
    local: str
    remote: str
    many: bool


_RELATIONS: dict[tuple[str, str], _Relation] = {
    (Collection.PRODUCT, Collection.UNIT_OF_MEASURE): _Relation(
        Collection.UNIT_OF_MEASURE, "unit_of_measure_id", "id", many=False
    ),
    (Collection.PROMOTION, Collection.PROMOTION_LINE_ITEM): _Relation(
        Collection.PROMOTION_LINE_ITEM, "id", "promotion_id", many=True
    ),
}


@dataclass
class InMemoryStore:
    """Dict-backed store that logs every call and can be told to fail.

    ``list_embeds`` returns single embedded rows wrapped in a list, the way some
    PostgREST relationships come back.
    """

    procedures: dict[str, FakeProcedure] = field(default_factory=dict)
    list_embeds: bool = False
    tables: dict[str, dict[int, Row]] = field(default_factory=lambda: defaultdict(dict))
    calls: list[StoreCall] = field(default_factory=list)
    faults: list[Fault] = field(default_factory=list)
    _ids: dict[str, Iterator[int]] = field(default_factory=dict)

    # setup -----------------------------------------------------------------

    def seed(self, collection: str, *rows: Mapping[str, object]) -> list[Row]:
        return [self._store_row(collection, row) for row in rows]

    def fail_on(
        self,
        method: str,
        target: str | None = None,
        *,
        error: StoreError | None = None,
        skip: int = 0,
        times: int = 1,
    ) -> None:
        self.faults.append(
            Fault(
                method=method,
                target=target,
                error=error or StoreError(f"injected {method} failure"),
                skip=skip,
                times=times,
            )
        )

    def rows(self, collection: str) -> list[Row]:
        return [copy.deepcopy(row) for _, row in sorted(self.tables[collection].items())]

    def calls_to(self, method: str, target: str | None = None) -> list[StoreCall]:
        return [
            call
            for call in self.calls
            if call.method == method and (target is None or call.target == target)
        ]

    def reset_calls(self) -> None:
        self.calls.clear()

    # StoreClient -----------------------------------------------------------

    def select(
        self,
        collection: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        embed: Sequence[str] = (),
    ) -> list[Row]:
        self._record("select", collection, filters=filters)
        rows = [copy.deepcopy(row) for row in self._matching(collection, filters)]
        if order_by is not None:
            rows.sort(key=lambda row: row[order_by])  # type: ignore[arg-type,return-value]
        return self._embed(collection, rows, embed)

    def insert(self, collection: str, rows: Sequence[Mapping[str, object]]) -> list[Row]:
        self._record("insert", collection, payload=[dict(row) for row in rows])
        return [copy.deepcopy(self._store_row(collection, row)) for row in rows]

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
        self._record("update", collection, payload=dict(changes), filters=filters)
        updated: list[Row] = []
        for row in self._matching(collection, filters):
            row.update(changes)
            updated.append(copy.deepcopy(row))
        return self._embed(collection, updated, embed)

    def delete(self, collection: str, *, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValueError("refusing to delete without filters")
        self._record("delete", collection, filters=filters)
        removed = [copy.deepcopy(row) for row in self._matching(collection, filters)]
        for row in removed:
            del self.tables[collection][row["id"]]  # type: ignore[index]
        return removed

    def invoke(self, procedure: str, payload: Mapping[str, object]) -> object:
        self._record("invoke", procedure, payload=dict(payload))
        func = self.procedures.get(procedure)
        if func is None:
            raise ProcedureNotFoundError(procedure, code="PGRST202")
        return func(self, payload)

    # internals -------------------------------------------------------------

    def _record(
        self,
        method: str,
        target: str,
        *,
        payload: object = None,
        filters: Sequence[Filter] = (),
    ) -> None:
        self.calls.append(StoreCall(method, str(target), payload, tuple(filters)))
        for fault in self.faults:
            if not fault.matches(method, target) or fault.times <= 0:
                continue
            if fault.skip > 0:
                fault.skip -= 1
                continue
            fault.times -= 1
            raise fault.error

    def _next_id(self, collection: str) -> int:
        if collection not in self._ids:
            self._ids[collection] = itertools.count(1)
        table = self.tables[collection]
        candidate = next(self._ids[collection])
        while candidate in table:
            candidate = next(self._ids[collection])
        return candidate

    def _store_row(self, collection: str, row: Mapping[str, object]) -> Row:
        stored = dict(row)
        if stored.get("id") is None:
            stored["id"] = self._next_id(collection)
        self.tables[collection][stored["id"]] = stored  # type: ignore[index]
        return stored

    def _matching(self, collection: str, filters: Sequence[Filter]) -> list[Row]:
        return [
            row
            for _, row in sorted(self.tables[collection].items())
            if all(_matches(row, item) for item in filters)
        ]

    def _embed(self, collection: str, rows: list[Row], embed: Sequence[str]) -> list[Row]:
        for name in embed:
            relation = _RELATIONS[(collection, name)]
            related = self.tables[relation.target].values()
            for row in rows:
                matches = [
                    copy.deepcopy(other)
                    for other in related
                    if other.get(relation.remote) == row.get(relation.local)
                ]
                if relation.many:
                    row[name] = sorted(matches, key=lambda other: other["id"])  # type: ignore[arg-type,return-value]
                elif self.list_embeds:
                    row[name] = matches[:1]
                else:
                    row[name] = matches[0] if matches else None
        return rows


def _matches(row: Mapping[str, object], item: Filter) -> bool:
    value = row.get(item.column)
    if item.op is FilterOp.IN:
        return value in item.value  # type: ignore[operator]
    return value == item.value
