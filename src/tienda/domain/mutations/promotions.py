"""Atomic procedure payloads for promotion mutations."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tienda.domain.model import DesiredComposition, PromotionHeader


def create_payload(header: PromotionHeader, composition: DesiredComposition) -> dict[str, object]:
    return {
        "p_name": header.name,
        "p_price": header.price,
        "p_active": header.active,
        "p_line_items": composition.as_payload(),
    }


def update_payload(
    promotion_id: int,
    header: PromotionHeader,
    composition: DesiredComposition,
) -> dict[str, object]:
    return {"p_promotion_id": promotion_id, **create_payload(header, composition)}
