from __future__ import annotations

from decimal import Decimal

import pytest

from tests.helpers.catalog import PRODUCT_A, PRODUCT_B, PRODUCT_D, STOCKED_PRODUCT, seed_promotion
from tienda.adapters.sqlalchemy import SqlAlchemyStoreClient, StartupError
from tienda.domain.errors import ProcedureNotFoundError, StoreError
from tienda.domain.ports import Collection, Filter, StoreClient


def test_store_satisfies_port(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    assert isinstance(sqlalchemy_store, StoreClient)


def test_select_with_filters_order_and_embed(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    rows = sqlalchemy_store.select(
        Collection.PRODUCT,
        filters=[Filter.in_("id", [STOCKED_PRODUCT, PRODUCT_D, PRODUCT_A])],
        order_by="id",
        embed=("unit_of_measure",),
    )

    assert [row["id"] for row in rows] == [PRODUCT_A, PRODUCT_D, STOCKED_PRODUCT]
    assert rows[0]["unit_of_measure"] == {"id": 1, "name": "Kilogram", "abbreviation": "kg"}
    assert rows[1]["unit_of_measure"] is None
    assert rows[0]["price"] == Decimal("4.50")


def test_promotion_embeds_its_line_items(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    promotion_id = seed_promotion(sqlalchemy_store, items=((PRODUCT_A, 2), (PRODUCT_B, 1)))

    [row] = sqlalchemy_store.select(
        Collection.PROMOTION,
        filters=[Filter.eq("id", promotion_id)],
        embed=("promotion_line_item",),
    )

    items = row["promotion_line_item"]
    assert isinstance(items, list)
    assert [(item["product_id"], item["quantity"]) for item in items] == [
        (PRODUCT_A, 2),
        (PRODUCT_B, 1),
    ]


def test_insert_returns_rows_in_parameter_order(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    promotion_id = seed_promotion(sqlalchemy_store)

    rows = sqlalchemy_store.insert(
        Collection.PROMOTION_LINE_ITEM,
        [
            {"promotion_id": promotion_id, "product_id": PRODUCT_B, "quantity": 3},
            {"promotion_id": promotion_id, "product_id": PRODUCT_A, "quantity": 1},
        ],
    )

    assert [row["product_id"] for row in rows] == [PRODUCT_B, PRODUCT_A]
    assert all(isinstance(row["id"], int) for row in rows)


def test_update_and_delete_report_affected_rows(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    updated = sqlalchemy_store.update(
        Collection.PRODUCT,
        {"stock": 99},
        filters=[Filter.eq("id", STOCKED_PRODUCT)],
        embed=("unit_of_measure",),
    )
    missing = sqlalchemy_store.update(
        Collection.PRODUCT, {"stock": 1}, filters=[Filter.eq("id", 404)]
    )
    promotion_id = seed_promotion(sqlalchemy_store, items=((PRODUCT_A, 2),))
    deleted = sqlalchemy_store.delete(
        Collection.PROMOTION_LINE_ITEM, filters=[Filter.eq("promotion_id", promotion_id)]
    )

    assert updated[0]["stock"] == 99
    assert updated[0]["unit_of_measure"] is not None
    assert missing == []
    assert [row["product_id"] for row in deleted] == [PRODUCT_A]


@pytest.mark.parametrize("method", ["update", "delete"])
def test_unfiltered_writes_are_refused(
    sqlalchemy_store: SqlAlchemyStoreClient, method: str
) -> None:
    with pytest.raises(ValueError, match="without filters"):
        if method == "update":
            sqlalchemy_store.update(Collection.PRODUCT, {"stock": 0}, filters=[])
        else:
            sqlalchemy_store.delete(Collection.PRODUCT, filters=[])


def test_constraint_violation_becomes_store_error(
    sqlalchemy_store: SqlAlchemyStoreClient,
) -> None:
    with pytest.raises(StoreError) as excinfo:
        sqlalchemy_store.update(
            Collection.PRODUCT, {"stock": -1}, filters=[Filter.eq("id", STOCKED_PRODUCT)]
        )

    assert excinfo.value.code == "integrity_error"


def test_unknown_column_and_collection(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    with pytest.raises(StoreError, match="no column colour"):
        sqlalchemy_store.update(
            Collection.PRODUCT, {"colour": "red"}, filters=[Filter.eq("id", PRODUCT_A)]
        )
    with pytest.raises(StoreError, match="unknown collection"):
        sqlalchemy_store.select("supplier")


def test_unknown_procedure(sqlalchemy_store: SqlAlchemyStoreClient) -> None:
    with pytest.raises(ProcedureNotFoundError):
        sqlalchemy_store.invoke("does_not_exist", {})


def test_store_without_engine_needs_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyStoreClient().select(Collection.PRODUCT)
