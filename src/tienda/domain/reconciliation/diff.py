"""Composition diff: persisted line items vs. a desired composition."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tienda.domain.model import DesiredComposition, PromotionLineItem

from .plan import CompositionDiff, LineItemDelete, LineItemInsert, LineItemUpdate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tienda.domain.model import LineItemLike


def diff_composition(
    existing: Iterable[PromotionLineItem],
    desired: DesiredComposition | Iterable[LineItemLike],
) -> CompositionDiff:
    """Return the minimal inserts, updates and deletes turning ``existing`` into ``desired``.

    ``existing`` must be freshly read from the store. ``desired`` is validated first,
    so duplicate product ids or non-positive quantities raise ``CallerInputError``
    before anything is compared. Inserts and updates follow the desired order;
    deletes follow the existing order.

    Each product id lands in at most one set while ``existing`` holds one row per
    product. If it holds more (a violated uniqueness invariant), the first row is
    matched and may be updated, and the surplus rows of the same product are
    deleted by line item id.
    """

    composition = DesiredComposition.of(desired)

    existing_by_product: dict[int, PromotionLineItem] = {}
    surplus: list[PromotionLineItem] = []
    ordered_existing: list[PromotionLineItem] = []
    for item in existing:
        ordered_existing.append(item)
        if item.product_id in existing_by_product:
            surplus.append(item)
        else:
            existing_by_product[item.product_id] = item

    to_insert: list[LineItemInsert] = []
    to_update: list[LineItemUpdate] = []
    for wanted in composition:
        current = existing_by_product.get(wanted.product_id)
        if current is None:
            to_insert.append(LineItemInsert(wanted.product_id, wanted.quantity))
        elif current.quantity != wanted.quantity:
            to_update.append(
                LineItemUpdate(
                    line_item_id=current.id,
                    product_id=current.product_id,
                    old_quantity=current.quantity,
                    new_quantity=wanted.quantity,
                )
            )

    keep = set(composition.product_ids)
    surplus_ids = {item.id for item in surplus}
    to_delete = [
        LineItemDelete(item.id, item.product_id, item.quantity)
        for item in ordered_existing
        if item.product_id not in keep or item.id in surplus_ids
    ]

    return CompositionDiff(
        to_insert=tuple(to_insert),
        to_update=tuple(to_update),
        to_delete=tuple(to_delete),
    )


def apply_diff(
    existing: Iterable[PromotionLineItem],
    diff: CompositionDiff,
    *,
    inserted: Iterable[PromotionLineItem] = (),
) -> tuple[PromotionLineItem, ...]:
    """Project the line items that result from applying ``diff`` to ``existing``.

    ``inserted`` carries the rows the store created for ``diff.to_insert`` so the
    projection uses their real identities.
    """

    deleted = set(diff.delete_ids)
    new_quantity = {entry.line_item_id: entry.new_quantity for entry in diff.to_update}
    result = [
        PromotionLineItem(
            id=item.id,
            promotion_id=item.promotion_id,
            product_id=item.product_id,
            quantity=new_quantity.get(item.id, item.quantity),
        )
        for item in existing
        if item.id not in deleted
    ]
    result.extend(inserted)
    return tuple(result)
