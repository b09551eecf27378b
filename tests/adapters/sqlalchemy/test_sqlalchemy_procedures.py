from __future__ import annotations

from decimal import Decimal

import pytest

from tests.helpers.catalog import PRODUCT_A, PRODUCT_B, PRODUCT_C, STOCKED_PRODUCT, seed_promotion
from tienda.adapters.sqlalchemy import SqlAlchemyStoreClient
from tienda.domain.errors import ProcedureRejectedError
from tienda.domain.ports import Collection, Filter

STOCK = "update_product_stock_transaction"
FIELDS = "update_product_transaction"
ACTIVE = "update_product_active_transaction"


def _line_items(store: SqlAlchemyStoreClient, promotion_id: int) -> list[tuple[int, int]]:
    rows = store.select(
        Collection.PROMOTION_LINE_ITEM,
        filters=[Filter.eq("promotion_id", promotion_id)],
        order_by="product_id",
    )
    return [(row["product_id"], row["quantity"]) for row in rows]  # type: ignore[misc]


def test_create_promotion_returns_embedded_row(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    result = sqlalchemy_store.invoke(
        "create_promotion_transaction",
        {
            "p_name": " Combo ",
            "p_price": "18.50",
            "p_active": True,
            "p_line_items": [{"product_id": PRODUCT_A, "quantity": 2}],
        },
    )

    assert isinstance(result, dict)
    assert result["name"] == "Combo"
    assert result["price"] == Decimal("18.50")
    assert [item["product_id"] for item in result["promotion_line_item"]] == [PRODUCT_A]


def test_create_promotion_with_unknown_product_writes_nothing(
    sqlalchemy_store: SqlAlchemyStoreClient,
) -> None:
    with pytest.raises(ProcedureRejectedError) as excinfo:
        sqlalchemy_store.invoke(
            "create_promotion_transaction",
            {"p_name": "Ghost", "p_line_items": [{"product_id": 999, "quantity": 1}]},
        )

    assert excinfo.value.code == "foreign_key_violation"
    assert sqlalchemy_store.select(Collection.PROMOTION) == []


def test_update_promotion_reconciles_in_one_transaction(
    sqlalchemy_store: SqlAlchemyStoreClient,
) -> None:
    promotion_id = seed_promotion(sqlalchemy_store, items=((PRODUCT_A, 2), (PRODUCT_B, 1)))

    sqlalchemy_store.invoke(
        "update_promotion_transaction",
        {
            "p_promotion_id": promotion_id,
            "p_name": "Starter kit",
            "p_price": None,
            "p_line_items": [
                {"product_id": PRODUCT_A, "quantity": 3},
                {"product_id": PRODUCT_C, "quantity": 1},
            ],
        },
    )

    assert _line_items(sqlalchemy_store, promotion_id) == [(PRODUCT_A, 3), (PRODUCT_C, 1)]


def test_rejected_update_rolls_back_the_header(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    promotion_id = seed_promotion(sqlalchemy_store, name="Before", items=((PRODUCT_A, 2),))

    with pytest.raises(ProcedureRejectedError):
        sqlalchemy_store.invoke(
            "update_promotion_transaction",
            {
                "p_promotion_id": promotion_id,
                "p_name": "After",
                "p_line_items": [{"product_id": 999, "quantity": 1}],
            },
        )

    [header] = sqlalchemy_store.select(
        Collection.PROMOTION, filters=[Filter.eq("id", promotion_id)]
    )
    assert header["name"] == "Before"
    assert _line_items(sqlalchemy_store, promotion_id) == [(PRODUCT_A, 2)]


def test_update_missing_promotion_is_rejected(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    with pytest.raises(ProcedureRejectedError, match="not found"):
        sqlalchemy_store.invoke(
            "update_promotion_transaction",
            {"p_promotion_id": 404, "p_name": "Nope", "p_line_items": []},
        )


def test_stock_procedure(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    result = sqlalchemy_store.invoke(STOCK, {"p_product_id": STOCKED_PRODUCT, "p_new_stock": 100})

    assert isinstance(result, dict)
    assert result["stock"] == 100
    assert result["unit_of_measure"]["abbreviation"] == "u"  # type: ignore[index]


@pytest.mark.parametrize(
    ("procedure", "payload", "code"),
    [
        (STOCK, {"p_product_id": 42, "p_new_stock": -5}, "check_violation"),
        (STOCK, {"p_product_id": "42", "p_new_stock": 5}, "invalid_payload"),
        (FIELDS, {"p_product_id": 42, "p_changes": {"colour": "red"}}, "undefined_column"),
        (FIELDS, {"p_product_id": 42, "p_changes": {}}, "invalid_payload"),
        (ACTIVE, {"p_product_id": 404, "p_active": False}, "not_found"),
    ],
)
def test_product_procedures_reject_bad_payloads(
    sqlalchemy_store: SqlAlchemyStoreClient,
    procedure: str,
    payload: dict[str, object],
    code: str,
) -> None:
    with pytest.raises(ProcedureRejectedError) as excinfo:
        sqlalchemy_store.invoke(procedure, payload)

    assert excinfo.value.code == code
