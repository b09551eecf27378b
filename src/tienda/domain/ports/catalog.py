"""Read-only catalog lookups used to render identifiers, never to decide consistency."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from tienda.domain.model import Product


@runtime_checkable
class CatalogReference(Protocol):
    def labels_for(self, product_ids: Iterable[int]) -> Mapping[int, str]: ...

    def get_product(self, product_id: int) -> Product | None: ...
