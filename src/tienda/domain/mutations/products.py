"""Product field validation and the single-row product fallback."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from tienda.domain.errors import CallerInputError, FallbackStep, FallbackStepError, StoreError
from tienda.domain.model import ProductCondition
from tienda.domain.ports import Collection, Filter
from tienda.domain.shaping import shape_product

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from tienda.domain.model import Product
    from tienda.domain.ports import StoreClient

PRODUCT_EMBED = ("unit_of_measure",)


def validate_stock(new_stock: object) -> int:
    if isinstance(new_stock, bool) or not isinstance(new_stock, int):
        raise CallerInputError(f"stock must be an integer, got {new_stock!r}")
    if new_stock < 0:
        raise CallerInputError(f"stock must not be negative, got {new_stock}")
    return new_stock


def validate_product_changes(changes: Mapping[str, object]) -> dict[str, object]:
    """Check field names and values; return the normalized change set."""

    if not changes:
        raise CallerInputError("no product fields to update")
    unknown = sorted(set(changes) - set(_VALIDATORS))
    if unknown:
        raise CallerInputError(f"unknown product field(s): {', '.join(unknown)}")
    return {name: _VALIDATORS[name](name, value) for name, value in changes.items()}


def update_product_row(
    store: StoreClient,
    product_id: int,
    changes: Mapping[str, object],
) -> Product:
    """Set ``changes`` on one product row and shape the returned representation."""

    try:
        rows = store.update(
            Collection.PRODUCT,
            changes,
            filters=[Filter.eq("id", product_id)],
            embed=PRODUCT_EMBED,
        )
    except StoreError as exc:
        raise FallbackStepError(FallbackStep.UPDATE_PRODUCT, str(exc)) from exc
    if not rows:
        raise FallbackStepError(FallbackStep.UPDATE_PRODUCT, f"product {product_id} not found")
    return shape_product(rows)


def _name(field: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CallerInputError(f"{field} must be a non-empty string")
    return value.strip()


def _optional_text(field: str, value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CallerInputError(f"{field} must be a string, got {value!r}")
    return value


def _stock(field: str, value: object) -> int:
    return validate_stock(value)


def _flag(field: str, value: object) -> bool:
    if not isinstance(value, bool):
        raise CallerInputError(f"{field} must be true or false, got {value!r}")
    return value


def _optional_id(field: str, value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise CallerInputError(f"{field} must be an integer, got {value!r}")
    return value


def _amount(field: str, value: object) -> Decimal:
    if value is None or isinstance(value, bool):
        raise CallerInputError(f"{field} must be a number, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise CallerInputError(f"{field} must be a number, got {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise CallerInputError(f"{field} must be a non-negative number, got {value!r}")
    return amount


def _optional_amount(field: str, value: object) -> Decimal | None:
    return None if value is None else _amount(field, value)


def _condition(field: str, value: object) -> str:
    try:
        return ProductCondition(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in ProductCondition)
        raise CallerInputError(f"{field} must be one of: {allowed}") from None


_VALIDATORS: dict[str, Callable[[str, object], object]] = {
    "name": _name,
    "description": _optional_text,
    "stock": _stock,
    "cost": _optional_amount,
    "price": _amount,
    "promotion_price": _optional_amount,
    "promotion_active": _flag,
    "active": _flag,
    "featured": _flag,
    "featured_order": _optional_id,
    "condition": _condition,
    "priced_in_usd": _flag,
    "accessory": _flag,
    "unit_of_measure_id": _optional_id,
}
