from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from tests.helpers.catalog import STOCKED_PRODUCT
from tests.helpers.store import InMemoryStore
from tienda.domain.errors import (
    AtomicPathRequiredError,
    CallerInputError,
    FallbackStep,
    FallbackStepError,
    ProcedureRejectedError,
    StoreUnavailableError,
)
from tienda.domain.model import Product
from tienda.domain.mutations import (
    FallbackPolicy,
    MutationPath,
    MutationPolicy,
    OperationKind,
    TransactionalMutationGateway,
)
from tienda.domain.ports import Collection, Filter

if TYPE_CHECKING:
    from collections.abc import Mapping

STOCK_PROCEDURE = "update_product_stock_transaction"


def _stock_procedure(store: InMemoryStore, payload: Mapping[str, object]) -> object:
    return store.update(
        Collection.PRODUCT,
        {"stock": payload["p_new_stock"]},
        filters=[Filter.eq("id", payload["p_product_id"])],
        embed=("unit_of_measure",),
    )


def test_atomic_stock_update_skips_fallback(memory_store: InMemoryStore) -> None:
    memory_store.procedures[STOCK_PROCEDURE] = _stock_procedure
    gateway = TransactionalMutationGateway(memory_store)

    outcome = gateway.adjust_product_stock(STOCKED_PRODUCT, 100)

    assert outcome.path is MutationPath.ATOMIC
    assert isinstance(outcome.entity, Product)
    assert outcome.entity.stock == 100
    [invoke] = memory_store.calls_to("invoke")
    assert invoke.payload == {"p_product_id": STOCKED_PRODUCT, "p_new_stock": 100}
    # the procedure's own row write is the only update
    assert len(memory_store.calls_to("update")) == 1


def test_atomic_error_falls_back_to_one_row_update(memory_store: InMemoryStore) -> None:
    gateway = TransactionalMutationGateway(memory_store)

    outcome = gateway.adjust_product_stock(STOCKED_PRODUCT, 100)

    assert outcome.path is MutationPath.FALLBACK
    [update] = memory_store.calls_to("update", Collection.PRODUCT)
    assert update.payload == {"stock": 100}
    assert update.filters == (Filter.eq("id", STOCKED_PRODUCT),)
    assert outcome.entity.stock == 100
    assert outcome.entity.unit_of_measure is not None
    assert outcome.entity.unit_of_measure.abbreviation == "u"


def test_atomic_and_fallback_results_have_the_same_shape(memory_store: InMemoryStore) -> None:
    fallback_outcome = TransactionalMutationGateway(memory_store).adjust_product_stock(
        STOCKED_PRODUCT, 55
    )
    memory_store.procedures[STOCK_PROCEDURE] = _stock_procedure
    atomic_outcome = TransactionalMutationGateway(memory_store).adjust_product_stock(
        STOCKED_PRODUCT, 55
    )

    assert fallback_outcome.path is MutationPath.FALLBACK
    assert atomic_outcome.path is MutationPath.ATOMIC
    assert atomic_outcome.entity == fallback_outcome.entity


def test_list_shaped_unit_of_measure_is_normalized() -> None:
    store = InMemoryStore(list_embeds=True)
    store.seed(Collection.UNIT_OF_MEASURE, {"id": 2, "name": "Unit", "abbreviation": "u"})
    store.seed(
        Collection.PRODUCT,
        {"id": 5, "name": "Gourd", "stock": 1, "price": "9.90", "unit_of_measure_id": 2},
        {"id": 6, "name": "Loose", "stock": 1, "price": "1.00", "unit_of_measure_id": None},
    )
    gateway = TransactionalMutationGateway(store)

    with_unit = gateway.adjust_product_stock(5, 3).entity
    without_unit = gateway.adjust_product_stock(6, 3).entity

    assert with_unit.unit_of_measure is not None
    assert with_unit.unit_of_measure.name == "Unit"
    assert with_unit.price == Decimal("9.90")
    assert without_unit.unit_of_measure is None


def test_empty_atomic_result_triggers_fallback(memory_store: InMemoryStore) -> None:
    memory_store.procedures[STOCK_PROCEDURE] = lambda store, payload: []
    gateway = TransactionalMutationGateway(memory_store)

    outcome = gateway.adjust_product_stock(STOCKED_PRODUCT, 7)

    assert outcome.path is MutationPath.FALLBACK
    assert outcome.entity.stock == 7


def test_missing_product_in_fallback_raises_step_error(memory_store: InMemoryStore) -> None:
    gateway = TransactionalMutationGateway(memory_store)

    with pytest.raises(FallbackStepError) as excinfo:
        gateway.adjust_product_stock(404, 1)

    assert excinfo.value.step is FallbackStep.UPDATE_PRODUCT
    assert "not found" in str(excinfo.value)


def test_fallback_store_error_surfaces_as_step_error(memory_store: InMemoryStore) -> None:
    memory_store.fail_on("update", Collection.PRODUCT, error=StoreUnavailableError("timeout"))
    gateway = TransactionalMutationGateway(memory_store)

    with pytest.raises(FallbackStepError) as excinfo:
        gateway.set_product_active(STOCKED_PRODUCT, False)

    assert isinstance(excinfo.value.__cause__, StoreUnavailableError)


@pytest.mark.parametrize("stock", [-1, True, "10"])
def test_invalid_stock_is_rejected_before_any_call(
    memory_store: InMemoryStore, stock: object
) -> None:
    gateway = TransactionalMutationGateway(memory_store)

    with pytest.raises(CallerInputError):
        gateway.adjust_product_stock(STOCKED_PRODUCT, stock)  # type: ignore[arg-type]

    assert memory_store.calls == []


def test_update_product_fields_normalizes_changes(memory_store: InMemoryStore) -> None:
    gateway = TransactionalMutationGateway(memory_store)

    outcome = gateway.update_product_fields(
        STOCKED_PRODUCT, {"price": "3.99", "name": "  Dulce  ", "condition": "used"}
    )

    [invoke] = memory_store.calls_to("invoke")
    assert invoke.target == "update_product_transaction"
    assert invoke.payload == {
        "p_product_id": STOCKED_PRODUCT,
        "p_changes": {"price": Decimal("3.99"), "name": "Dulce", "condition": "used"},
    }
    assert outcome.entity.price == Decimal("3.99")
    assert outcome.entity.name == "Dulce"


def test_unknown_product_field_is_rejected(memory_store: InMemoryStore) -> None:
    gateway = TransactionalMutationGateway(memory_store)

    with pytest.raises(CallerInputError, match="unknown product field"):
        gateway.update_product_fields(STOCKED_PRODUCT, {"colour": "red"})

    assert memory_store.calls == []


def test_set_product_active_uses_activation_procedure(memory_store: InMemoryStore) -> None:
    gateway = TransactionalMutationGateway(memory_store)

    outcome = gateway.set_product_active(STOCKED_PRODUCT, False)

    [invoke] = memory_store.calls_to("invoke")
    assert invoke.target == "update_product_active_transaction"
    assert invoke.payload == {"p_product_id": STOCKED_PRODUCT, "p_active": False}
    assert outcome.entity.active is False


def test_policy_never_requires_the_atomic_path(memory_store: InMemoryStore) -> None:
    gateway = TransactionalMutationGateway(
        memory_store, policy=MutationPolicy(fallback=FallbackPolicy.NEVER)
    )

    with pytest.raises(AtomicPathRequiredError) as excinfo:
        gateway.adjust_product_stock(STOCKED_PRODUCT, 3)

    assert excinfo.value.status == "unavailable"
    assert memory_store.calls_to("update") == []


def test_unavailable_only_policy_surfaces_rejections(memory_store: InMemoryStore) -> None:
    def _reject(store: InMemoryStore, payload: Mapping[str, object]) -> object:
        raise ProcedureRejectedError("stock locked", code="P0001")

    memory_store.procedures[STOCK_PROCEDURE] = _reject
    gateway = TransactionalMutationGateway(
        memory_store, policy=MutationPolicy(fallback=FallbackPolicy.ON_UNAVAILABLE_ONLY)
    )

    with pytest.raises(AtomicPathRequiredError) as excinfo:
        gateway.adjust_product_stock(STOCKED_PRODUCT, 3)

    assert isinstance(excinfo.value.__cause__, ProcedureRejectedError)
    assert memory_store.calls_to("update") == []


def test_unavailable_only_policy_still_falls_back_when_missing(
    memory_store: InMemoryStore,
) -> None:
    gateway = TransactionalMutationGateway(
        memory_store, policy=MutationPolicy(fallback=FallbackPolicy.ON_UNAVAILABLE_ONLY)
    )

    outcome = gateway.adjust_product_stock(STOCKED_PRODUCT, 3)

    assert outcome.path is MutationPath.FALLBACK


def test_per_operation_override(memory_store: InMemoryStore) -> None:
    policy = MutationPolicy(overrides={OperationKind.PRODUCT_ACTIVE: FallbackPolicy.NEVER})
    gateway = TransactionalMutationGateway(memory_store, policy=policy)

    assert gateway.adjust_product_stock(STOCKED_PRODUCT, 3).path is MutationPath.FALLBACK
    with pytest.raises(AtomicPathRequiredError):
        gateway.set_product_active(STOCKED_PRODUCT, True)


def test_fallback_is_logged_with_status(
    memory_store: InMemoryStore, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level("INFO", logger="tienda.domain.mutations.strategy")

    TransactionalMutationGateway(memory_store).adjust_product_stock(STOCKED_PRODUCT, 3)

    assert any("unavailable" in record.getMessage() for record in caplog.records)
