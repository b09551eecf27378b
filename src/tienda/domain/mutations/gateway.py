"""Entry point for every write the storefront admin performs."""

from __future__ import annotations

from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from tienda.domain.errors import CallerInputError, StoreError
from tienda.domain.model import DesiredComposition, PromotionHeader
from tienda.domain.ports import Collection, Filter
from tienda.domain.reconciliation import ReconciliationExecutor
from tienda.domain.shaping import shape_line_items, shape_product, shape_promotion

from .policy import MutationPolicy, OperationKind
from .products import update_product_row, validate_product_changes, validate_stock
from .promotions import create_payload, update_payload
from .strategy import DualPathMutation

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from tienda.domain.model import LineItemLike, Product, Promotion, PromotionLineItem
    from tienda.domain.ports import CatalogReference, StoreClient
    from tienda.domain.reconciliation import CompositionDiff, ReconciliationResult

    from .outcome import MutationOutcome

log = getLogger(__name__)


class TransactionalMutationGateway:
    """Run promotion and product mutations atomically when possible.

    Every dual-path operation first invokes its atomic procedure. If that does
    not succeed and the policy allows it, an equivalent sequence of row
    operations runs instead. Input is validated before any store call.
    """

    def __init__(
        self,
        store: StoreClient,
        *,
        policy: MutationPolicy | None = None,
        catalog: CatalogReference | None = None,
    ) -> None:
        self._store = store
        self.policy = policy or MutationPolicy()
        self._executor = ReconciliationExecutor(
            store,
            failure_mode=self.policy.failure_mode,
            catalog=catalog,
        )

    def create_or_update_promotion(
        self,
        promotion_id: int | None = None,
        *,
        name: str,
        price: object = None,
        line_items: Iterable[LineItemLike],
        active: bool = True,
    ) -> MutationOutcome[Promotion]:
        header = PromotionHeader(name=name, price=price, active=active)  # type: ignore[arg-type]
        composition = DesiredComposition.of(line_items)

        if promotion_id is None:
            kind = OperationKind.PROMOTION_CREATE
            payload = create_payload(header, composition)
            fallback = partial(self._executor.create, header, composition)
        else:
            kind = OperationKind.PROMOTION_UPDATE
            payload = update_payload(promotion_id, header, composition)
            fallback = partial(self._executor.reconcile, promotion_id, header, composition)

        outcome = self._run(
            DualPathMutation(
                kind=kind,
                procedure=self.policy.procedures.for_kind(kind),
                payload=payload,
                shape=partial(self._shape_atomic_promotion, composition),
                fallback=partial(_promotion_fallback, fallback),
            )
        )
        log.info("Saved promotion %s via %s path", outcome.entity.id, outcome.path)
        return outcome

    def adjust_product_stock(self, product_id: int, new_stock: int) -> MutationOutcome[Product]:
        stock = validate_stock(new_stock)
        return self._product_mutation(
            OperationKind.PRODUCT_STOCK,
            product_id,
            {"p_product_id": product_id, "p_new_stock": stock},
            {"stock": stock},
        )

    def update_product_fields(
        self, product_id: int, changes: Mapping[str, object]
    ) -> MutationOutcome[Product]:
        validated = validate_product_changes(changes)
        return self._product_mutation(
            OperationKind.PRODUCT_FIELDS,
            product_id,
            {"p_product_id": product_id, "p_changes": validated},
            validated,
        )

    def set_product_active(self, product_id: int, active: bool) -> MutationOutcome[Product]:
        if not isinstance(active, bool):
            raise CallerInputError(f"active must be true or false, got {active!r}")
        return self._product_mutation(
            OperationKind.PRODUCT_ACTIVE,
            product_id,
            {"p_product_id": product_id, "p_active": active},
            {"active": active},
        )

    def set_promotion_active(self, promotion_id: int, active: bool) -> Promotion:
        """Soft delete (``active=False``) or reactivate a promotion."""

        if not isinstance(active, bool):
            raise CallerInputError(f"active must be true or false, got {active!r}")
        rows = self._store.update(
            Collection.PROMOTION,
            {"active": active},
            filters=[Filter.eq("id", promotion_id)],
            embed=("promotion_line_item",),
        )
        if not rows:
            raise StoreError(f"promotion {promotion_id} not found", code="not_found")
        return shape_promotion(rows)

    def promotion_line_items(self, promotion_id: int) -> tuple[PromotionLineItem, ...]:
        rows = self._store.select(
            Collection.PROMOTION_LINE_ITEM,
            filters=[Filter.eq("promotion_id", promotion_id)],
            order_by="id",
        )
        return shape_line_items(rows)

    def _product_mutation(
        self,
        kind: OperationKind,
        product_id: int,
        payload: dict[str, object],
        changes: Mapping[str, object],
    ) -> MutationOutcome[Product]:
        outcome = self._run(
            DualPathMutation(
                kind=kind,
                procedure=self.policy.procedures.for_kind(kind),
                payload=payload,
                shape=shape_product,
                fallback=partial(_product_fallback, self._store, product_id, changes),
            )
        )
        log.info("Updated product %s (%s) via %s path", product_id, kind, outcome.path)
        return outcome

    def _run[T](self, mutation: DualPathMutation[T]) -> MutationOutcome[T]:
        return mutation.run(self._store, self.policy.fallback_for(mutation.kind))

    def _shape_atomic_promotion(
        self, composition: DesiredComposition, result: object
    ) -> Promotion:
        promotion = shape_promotion(result)
        if not promotion.line_items and len(composition):
            promotion = promotion.with_line_items(self.promotion_line_items(promotion.id))
        return promotion


def _promotion_fallback(
    run: partial[ReconciliationResult],
) -> tuple[Promotion, CompositionDiff | None]:
    result = run()
    return result.promotion, result.diff


def _product_fallback(
    store: StoreClient, product_id: int, changes: Mapping[str, object]
) -> tuple[Product, CompositionDiff | None]:
    return update_product_row(store, product_id, changes), None
