"""Turn raw store rows into domain entities.

Atomic procedures and fallback row operations return differently nested
payloads for the same entity. Everything passes through here so both paths
produce one canonical shape. Anything that cannot be shaped raises
``MalformedResultError``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from tienda.domain.errors import MalformedResultError
from tienda.domain.model import (
    Product,
    ProductCondition,
    Promotion,
    PromotionLineItem,
    UnitOfMeasure,
)

if TYPE_CHECKING:
    from tienda.domain.ports import Row

LINE_ITEM_KEYS = ("promotion_line_item", "line_items")


def is_empty_result(result: object) -> bool:
    """Procedures that answer with nothing usable count as failed attempts."""

    if result is None:
        return True
    if isinstance(result, Mapping | Sequence) and not isinstance(result, str):
        return len(result) == 0
    return False


def single_row(result: object, *, what: str) -> Row:
    """Return the one row in ``result``; accepts a mapping or a list holding one."""

    if isinstance(result, Mapping):
        return dict(result)
    if isinstance(result, Sequence) and not isinstance(result, str) and result:
        first = result[0]
        if isinstance(first, Mapping):
            return dict(first)
    raise MalformedResultError(f"expected a {what} row, got {type(result).__name__}")


def shape_unit_of_measure(value: object) -> UnitOfMeasure | None:
    """Normalize an embedded unit of measure: object, list of one, empty list or null."""

    if value is None:
        return None
    if isinstance(value, Sequence) and not isinstance(value, str):
        if not value:
            return None
        value = value[0]
    if not isinstance(value, Mapping):
        raise MalformedResultError(f"invalid unit of measure: {value!r}")
    return UnitOfMeasure(
        id=_integer(value, "id"),
        name=str(_required(value, "name")),
        abbreviation=_optional_str(value.get("abbreviation")),
    )


def shape_product(result: object) -> Product:
    row = single_row(result, what="product")
    try:
        condition = ProductCondition(row.get("condition") or ProductCondition.NEW)
    except ValueError:
        raise MalformedResultError(f"unknown product condition: {row.get('condition')!r}") from None
    return Product(
        id=_integer(row, "id"),
        name=str(_required(row, "name")),
        stock=_integer(row, "stock"),
        price=_required_money(row, "price"),
        active=bool(row.get("active", True)),
        description=_optional_str(row.get("description")),
        cost=_money(row, "cost"),
        promotion_price=_money(row, "promotion_price"),
        promotion_active=bool(row.get("promotion_active", False)),
        featured=bool(row.get("featured", False)),
        featured_order=_optional_int(row, "featured_order"),
        condition=condition,
        priced_in_usd=bool(row.get("priced_in_usd", False)),
        accessory=bool(row.get("accessory", False)),
        unit_of_measure_id=_optional_int(row, "unit_of_measure_id"),
        unit_of_measure=shape_unit_of_measure(row.get("unit_of_measure")),
    )


def shape_line_item(row: Mapping[str, object]) -> PromotionLineItem:
    return PromotionLineItem(
        id=_integer(row, "id"),
        promotion_id=_integer(row, "promotion_id"),
        product_id=_integer(row, "product_id"),
        quantity=_integer(row, "quantity"),
    )


def shape_line_items(rows: object) -> tuple[PromotionLineItem, ...]:
    if rows is None:
        return ()
    if not isinstance(rows, Sequence) or isinstance(rows, str):
        raise MalformedResultError(f"expected a list of line items, got {type(rows).__name__}")
    items: list[PromotionLineItem] = []
    for row in rows:
        if not isinstance(row, Mapping):
            raise MalformedResultError(f"invalid line item row: {row!r}")
        items.append(shape_line_item(row))
    return tuple(items)


def shape_promotion(
    result: object,
    *,
    line_items: Sequence[PromotionLineItem] | None = None,
) -> Promotion:
    """Shape a promotion row; embedded line items are used unless ``line_items`` is given."""

    row = single_row(result, what="promotion")
    if line_items is None:
        embedded = next((row[key] for key in LINE_ITEM_KEYS if key in row), None)
        line_items = shape_line_items(embedded)
    return Promotion(
        id=_integer(row, "id"),
        name=str(_required(row, "name")),
        price=_money(row, "price"),
        active=bool(row.get("active", True)),
        image_path=_optional_str(row.get("image_path")),
        line_items=tuple(line_items),
    )


def _required(row: Mapping[str, object], key: str) -> object:
    value = row.get(key)
    if value is None:
        raise MalformedResultError(f"row is missing {key!r}")
    return value


def _integer(row: Mapping[str, object], key: str) -> int:
    value = _required(row, key)
    if isinstance(value, bool):
        raise MalformedResultError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        raise MalformedResultError(f"{key} must be an integer, got {value!r}") from None


def _optional_int(row: Mapping[str, object], key: str) -> int | None:
    if row.get(key) is None:
        return None
    return _integer(row, key)


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _required_money(row: Mapping[str, object], key: str) -> Decimal:
    _required(row, key)
    money = _money(row, key)
    assert money is not None
    return money


def _money(row: Mapping[str, object], key: str) -> Decimal | None:
    value = row.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedResultError(f"{key} must be numeric, got {value!r}")
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise MalformedResultError(f"{key} must be numeric, got {value!r}") from None
