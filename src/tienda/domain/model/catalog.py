"""Read-only catalog entities.

The mutation core never changes these structurally; it only issues single-field
updates through the gateway and shapes the rows the store returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum


class ProductCondition(StrEnum):
    NEW = "new"
    USED_PREMIUM = "used_premium"
    USED = "used"


@dataclass(frozen=True, slots=True)
class UnitOfMeasure:
    id: int
    name: str
    abbreviation: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Product:
    id: int
    name: str
    stock: int
    price: Decimal
    active: bool
    description: str | None = None
    cost: Decimal | None = None
    promotion_price: Decimal | None = None
    promotion_active: bool = False
    featured: bool = False
    featured_order: int | None = None
    condition: ProductCondition = ProductCondition.NEW
    priced_in_usd: bool = False
    accessory: bool = False
    unit_of_measure_id: int | None = None
    unit_of_measure: UnitOfMeasure | None = None

    @property
    def label(self) -> str:
        return f"{self.name} (#{self.id})"
