"""Catalog lookups served from any ``StoreClient``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tienda.domain.ports import Collection, Filter
from tienda.domain.shaping import shape_product

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from tienda.domain.model import Product
    from tienda.domain.ports import StoreClient


class StoreCatalogReference:
    """Read-only product labels and snapshots for rendering reports."""

    def __init__(self, store: StoreClient) -> None:
        self._store = store

    def labels_for(self, product_ids: Iterable[int]) -> Mapping[int, str]:
        wanted = tuple(dict.fromkeys(product_ids))
        if not wanted:
            return {}
        rows = self._store.select(
            Collection.PRODUCT,
            filters=[Filter.in_("id", wanted)],
            order_by="id",
            embed=("unit_of_measure",),
        )
        return {product.id: product.label for product in map(shape_product, rows)}

    def get_product(self, product_id: int) -> Product | None:
        rows = self._store.select(
            Collection.PRODUCT,
            filters=[Filter.eq("id", product_id)],
            embed=("unit_of_measure",),
        )
        return shape_product(rows) if rows else None
