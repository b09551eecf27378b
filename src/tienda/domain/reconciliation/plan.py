"""Diff types shared by the diff engine, the executor and atomic procedures.

A ``CompositionDiff`` is the contract between reading persisted line items and
writing them: the executor never decides anything the diff did not list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class LineItemInsert:
    product_id: int
    quantity: int


@dataclass(frozen=True, slots=True)
class LineItemUpdate:
    """Quantity change keyed by the existing line item's own identity."""

    line_item_id: int
    product_id: int
    old_quantity: int
    new_quantity: int


@dataclass(frozen=True, slots=True)
class LineItemDelete:
    line_item_id: int
    product_id: int
    quantity: int


@dataclass(frozen=True, slots=True)
class CompositionDiff:
    to_insert: tuple[LineItemInsert, ...] = ()
    to_update: tuple[LineItemUpdate, ...] = ()
    to_delete: tuple[LineItemDelete, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.to_insert or self.to_update or self.to_delete)

    @property
    def product_ids(self) -> tuple[int, ...]:
        return (
            *(entry.product_id for entry in self.to_insert),
            *(entry.product_id for entry in self.to_update),
            *(entry.product_id for entry in self.to_delete),
        )

    @property
    def delete_ids(self) -> tuple[int, ...]:
        return tuple(entry.line_item_id for entry in self.to_delete)

    def describe(self, labels: Mapping[int, str] | None = None) -> str:
        if self.is_empty:
            return "no line item changes"
        names = labels or {}
        parts: list[str] = []
        parts.extend(
            f"update {_label(names, e.product_id)}: {e.old_quantity}->{e.new_quantity}"
            for e in self.to_update
        )
        parts.extend(
            f"insert {_label(names, e.product_id)} x{e.quantity}" for e in self.to_insert
        )
        parts.extend(f"delete {_label(names, e.product_id)}" for e in self.to_delete)
        return "; ".join(parts)


def _label(labels: Mapping[int, str], product_id: int) -> str:
    return labels.get(product_id, f"product #{product_id}")
