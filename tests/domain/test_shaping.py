from __future__ import annotations

from decimal import Decimal

import pytest

from tienda.domain.errors import MalformedResultError
from tienda.domain.model import ProductCondition, UnitOfMeasure
from tienda.domain.shaping import (
    is_empty_result,
    shape_product,
    shape_promotion,
    shape_unit_of_measure,
    single_row,
)

UNIT = {"id": 1, "name": "Kilogram", "abbreviation": "kg"}


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (UNIT, UnitOfMeasure(1, "Kilogram", "kg")),
        ([UNIT], UnitOfMeasure(1, "Kilogram", "kg")),
        ([], None),
        (None, None),
    ],
)
def test_unit_of_measure_shapes(value: object, expected: UnitOfMeasure | None) -> None:
    assert shape_unit_of_measure(value) == expected


def test_product_from_single_row_list() -> None:
    product = shape_product(
        [
            {
                "id": 3,
                "name": "Bombilla",
                "stock": 4,
                "price": 7.25,
                "cost": "3.10",
                "condition": "used_premium",
                "accessory": True,
                "unit_of_measure": [UNIT],
            }
        ]
    )

    assert product.price == Decimal("7.25")
    assert product.cost == Decimal("3.10")
    assert product.condition is ProductCondition.USED_PREMIUM
    assert product.accessory
    assert product.unit_of_measure == UnitOfMeasure(1, "Kilogram", "kg")
    assert product.active


def test_product_missing_price_is_malformed() -> None:
    with pytest.raises(MalformedResultError, match="price"):
        shape_product({"id": 3, "name": "Bombilla", "stock": 4})


def test_product_with_unknown_condition_is_malformed() -> None:
    with pytest.raises(MalformedResultError, match="condition"):
        shape_product({"id": 3, "name": "B", "stock": 4, "price": 1, "condition": "broken"})


def test_promotion_with_embedded_line_items() -> None:
    promotion = shape_promotion(
        {
            "id": 9,
            "name": "Kit",
            "price": None,
            "active": False,
            "line_items": [{"id": 1, "promotion_id": 9, "product_id": 2, "quantity": 3}],
        }
    )

    assert promotion.price is None
    assert not promotion.active
    assert [(item.product_id, item.quantity) for item in promotion.line_items] == [(2, 3)]


@pytest.mark.parametrize("result", ["text", 5, [], [1]])
def test_single_row_rejects_non_rows(result: object) -> None:
    with pytest.raises(MalformedResultError):
        single_row(result, what="product")


def test_is_empty_result() -> None:
    assert is_empty_result(None)
    assert is_empty_result([])
    assert is_empty_result({})
    assert not is_empty_result([{}])
    assert not is_empty_result(12)
