"""Port for the relational store the mutation core writes through.

Every component receives a ``StoreClient`` through its constructor. Adapters
translate their own failures into ``tienda.domain.errors.StoreError`` subclasses.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, runtime_checkable

type Row = dict[str, object]


class Collection(StrEnum):
    PRODUCT = "product"
    UNIT_OF_MEASURE = "unit_of_measure"
    PROMOTION = "promotion"
    PROMOTION_LINE_ITEM = "promotion_line_item"


class FilterOp(StrEnum):
    EQ = "eq"
    IN = "in"


@dataclass(frozen=True, slots=True)
class Filter:
    column: str
    op: FilterOp
    value: object

    @classmethod
    def eq(cls, column: str, value: object) -> Filter:
        return cls(column, FilterOp.EQ, value)

    @classmethod
    def in_(cls, column: str, values: Iterable[object]) -> Filter:
        return cls(column, FilterOp.IN, tuple(values))


@runtime_checkable
class StoreClient(Protocol):
    """Typed row operations on named collections plus named-procedure invocation."""

    def select(
        self,
        collection: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        embed: Sequence[str] = (),
    ) -> list[Row]: ...

    def insert(self, collection: str, rows: Sequence[Mapping[str, object]]) -> list[Row]: ...

    def update(
        self,
        collection: str,
        changes: Mapping[str, object],
        *,
        filters: Sequence[Filter],
        embed: Sequence[str] = (),
    ) -> list[Row]: ...

    def delete(self, collection: str, *, filters: Sequence[Filter]) -> list[Row]: ...

    def invoke(self, procedure: str, payload: Mapping[str, object]) -> object: ...
