"""Atomic procedures for the SQLAlchemy store.

Each procedure receives an open connection inside a single transaction; any
exception rolls the whole procedure back. Business refusals raise
``ProcedureRejectedError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Final

from sqlalchemy import delete, insert, select, update

from tienda.domain.errors import CallerInputError, ProcedureRejectedError
from tienda.domain.model import DesiredComposition
from tienda.domain.reconciliation import diff_composition
from tienda.domain.shaping import shape_line_items

from .tables import (
    attach_embeds,
    product_table,
    promotion_line_item_table,
    promotion_table,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from sqlalchemy.engine import Connection

    from tienda.domain.ports import Row

type Procedure = Callable[[Connection, Mapping[str, object]], object]

PRODUCT_COLUMNS: Final[frozenset[str]] = frozenset(
    column.name for column in product_table.columns if column.name != "id"
)


def create_promotion(conn: Connection, payload: Mapping[str, object]) -> Row:
    header = _promotion_header(payload)
    composition = _composition(payload)
    _require_products(conn, composition.product_ids)

    promotion_id = conn.execute(
        insert(promotion_table).values(header).returning(promotion_table.c.id)
    ).scalar_one()
    if len(composition):
        conn.execute(
            insert(promotion_line_item_table),
            [
                {"promotion_id": promotion_id, "product_id": item.product_id, "quantity": item.quantity}
                for item in composition
            ],
        )
    return _promotion_row(conn, promotion_id)


def update_promotion(conn: Connection, payload: Mapping[str, object]) -> Row:
    promotion_id = _integer(payload, "p_promotion_id")
    header = _promotion_header(payload)
    composition = _composition(payload)

    updated = conn.execute(
        update(promotion_table)
        .where(promotion_table.c.id == promotion_id)
        .values(header)
        .returning(promotion_table.c.id)
    ).first()
    if updated is None:
        raise ProcedureRejectedError(f"promotion {promotion_id} not found", code="not_found")
    _require_products(conn, composition.product_ids)

    existing = shape_line_items(
        [
            dict(row._mapping)
            for row in conn.execute(
                select(promotion_line_item_table)
                .where(promotion_line_item_table.c.promotion_id == promotion_id)
                .order_by(promotion_line_item_table.c.id)
            )
        ]
    )
    diff = diff_composition(existing, composition)
    for entry in diff.to_update:
        conn.execute(
            update(promotion_line_item_table)
            .where(promotion_line_item_table.c.id == entry.line_item_id)
            .values(quantity=entry.new_quantity)
        )
    if diff.to_delete:
        conn.execute(
            delete(promotion_line_item_table).where(
                promotion_line_item_table.c.id.in_(diff.delete_ids)
            )
        )
    if diff.to_insert:
        conn.execute(
            insert(promotion_line_item_table),
            [
                {"promotion_id": promotion_id, "product_id": entry.product_id, "quantity": entry.quantity}
                for entry in diff.to_insert
            ],
        )
    return _promotion_row(conn, promotion_id)


def update_product_stock(conn: Connection, payload: Mapping[str, object]) -> Row:
    product_id = _integer(payload, "p_product_id")
    stock = _integer(payload, "p_new_stock")
    if stock < 0:
        raise ProcedureRejectedError(f"stock must not be negative, got {stock}", code="check_violation")
    return _update_product(conn, product_id, {"stock": stock})


def update_product_fields(conn: Connection, payload: Mapping[str, object]) -> Row:
    product_id = _integer(payload, "p_product_id")
    changes = payload.get("p_changes")
    if not isinstance(changes, dict) or not changes:
        raise ProcedureRejectedError("p_changes must be a non-empty object", code="invalid_payload")
    unknown = sorted(set(changes) - PRODUCT_COLUMNS)
    if unknown:
        raise ProcedureRejectedError(
            f"unknown product column(s): {', '.join(unknown)}", code="undefined_column"
        )
    return _update_product(conn, product_id, changes)


def update_product_active(conn: Connection, payload: Mapping[str, object]) -> Row:
    product_id = _integer(payload, "p_product_id")
    active = payload.get("p_active")
    if not isinstance(active, bool):
        raise ProcedureRejectedError("p_active must be a boolean", code="invalid_payload")
    return _update_product(conn, product_id, {"active": active})


DEFAULT_PROCEDURES: Final[Mapping[str, Procedure]] = {
    "create_promotion_transaction": create_promotion,
    "update_promotion_transaction": update_promotion,
    "update_product_stock_transaction": update_product_stock,
    "update_product_transaction": update_product_fields,
    "update_product_active_transaction": update_product_active,
}


def _update_product(conn: Connection, product_id: int, changes: Mapping[str, object]) -> Row:
    row = conn.execute(
        update(product_table)
        .where(product_table.c.id == product_id)
        .values(dict(changes))
        .returning(product_table)
    ).first()
    if row is None:
        raise ProcedureRejectedError(f"product {product_id} not found", code="not_found")
    return attach_embeds(conn, product_table.name, [dict(row._mapping)], ("unit_of_measure",))[0]


def _promotion_row(conn: Connection, promotion_id: int) -> Row:
    row = conn.execute(
        select(promotion_table).where(promotion_table.c.id == promotion_id)
    ).one()
    return attach_embeds(
        conn, promotion_table.name, [dict(row._mapping)], ("promotion_line_item",)
    )[0]


def _require_products(conn: Connection, product_ids: tuple[int, ...]) -> None:
    if not product_ids:
        return
    found = set(
        conn.execute(
            select(product_table.c.id).where(product_table.c.id.in_(product_ids))
        ).scalars()
    )
    missing = [product_id for product_id in product_ids if product_id not in found]
    if missing:
        listed = ", ".join(str(product_id) for product_id in missing)
        raise ProcedureRejectedError(f"unknown product(s): {listed}", code="foreign_key_violation")


def _promotion_header(payload: Mapping[str, object]) -> dict[str, object]:
    name = payload.get("p_name")
    if not isinstance(name, str) or not name.strip():
        raise ProcedureRejectedError("p_name must not be empty", code="invalid_payload")
    price = payload.get("p_price")
    if price is not None:
        try:
            price = Decimal(str(price))
        except InvalidOperation:
            raise ProcedureRejectedError(f"invalid p_price: {price!r}", code="invalid_payload") from None
    return {"name": name.strip(), "price": price, "active": bool(payload.get("p_active", True))}


def _composition(payload: Mapping[str, object]) -> DesiredComposition:
    entries = payload.get("p_line_items") or []
    if not isinstance(entries, list):
        raise ProcedureRejectedError("p_line_items must be a list", code="invalid_payload")
    try:
        return DesiredComposition.of(entries)
    except CallerInputError as exc:
        raise ProcedureRejectedError(str(exc), code="invalid_payload") from exc


def _integer(payload: Mapping[str, object], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProcedureRejectedError(f"{key} must be an integer, got {value!r}", code="invalid_payload")
    return value
