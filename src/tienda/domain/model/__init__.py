"""Domain model for promotions and the read-only product catalog."""

from __future__ import annotations

from .catalog import Product, ProductCondition, UnitOfMeasure
from .promotion import (
    DesiredComposition,
    LineItemInput,
    LineItemLike,
    Promotion,
    PromotionHeader,
    PromotionLineItem,
)

__all__ = [
    "DesiredComposition",
    "LineItemInput",
    "LineItemLike",
    "Product",
    "ProductCondition",
    "Promotion",
    "PromotionHeader",
    "PromotionLineItem",
    "UnitOfMeasure",
]
