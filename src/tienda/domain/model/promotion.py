"""Promotion aggregate: a header row plus its dependent line items."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from tienda.domain.errors import CallerInputError


@dataclass(frozen=True, slots=True)
class PromotionLineItem:
    """Persisted line item. ``id`` is the row's own identity, not the product's."""

    id: int
    promotion_id: int
    product_id: int
    quantity: int


@dataclass(frozen=True, slots=True, kw_only=True)
class Promotion:
    id: int
    name: str
    price: Decimal | None
    active: bool
    image_path: str | None = None
    line_items: tuple[PromotionLineItem, ...] = ()

    def with_line_items(self, line_items: Iterable[PromotionLineItem]) -> Promotion:
        return Promotion(
            id=self.id,
            name=self.name,
            price=self.price,
            active=self.active,
            image_path=self.image_path,
            line_items=tuple(line_items),
        )


@dataclass(frozen=True, slots=True)
class LineItemInput:
    product_id: int
    quantity: int

    def __post_init__(self) -> None:
        if isinstance(self.product_id, bool) or not isinstance(self.product_id, int):
            raise CallerInputError(f"product id must be an integer, got {self.product_id!r}")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise CallerInputError(f"quantity must be an integer, got {self.quantity!r}")
        if self.quantity <= 0:
            raise CallerInputError(
                f"quantity for product {self.product_id} must be positive, got {self.quantity}"
            )


type LineItemLike = LineItemInput | tuple[int, int] | Mapping[str, int]


@dataclass(frozen=True, slots=True)
class DesiredComposition:
    """Target line items for one reconciliation call, in caller order."""

    items: tuple[LineItemInput, ...] = ()

    def __post_init__(self) -> None:
        seen: set[int] = set()
        duplicates: list[int] = []
        for item in self.items:
            if item.product_id in seen and item.product_id not in duplicates:
                duplicates.append(item.product_id)
            seen.add(item.product_id)
        if duplicates:
            listed = ", ".join(str(product_id) for product_id in duplicates)
            raise CallerInputError(f"duplicate product ids in composition: {listed}")

    @classmethod
    def of(cls, entries: Iterable[LineItemLike]) -> DesiredComposition:
        if isinstance(entries, DesiredComposition):
            return entries
        return cls(tuple(_coerce_item(entry) for entry in entries))

    def __iter__(self) -> Iterator[LineItemInput]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def product_ids(self) -> tuple[int, ...]:
        return tuple(item.product_id for item in self.items)

    def as_payload(self) -> list[dict[str, int]]:
        return [{"product_id": item.product_id, "quantity": item.quantity} for item in self.items]


@dataclass(frozen=True, slots=True)
class PromotionHeader:
    """Top-level promotion fields written in one call."""

    name: str
    price: Decimal | None = None
    active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise CallerInputError("promotion name must not be empty")
        if self.price is not None:
            price = _coerce_price(self.price)
            if price <= 0:
                raise CallerInputError(f"promotion price must be positive, got {price}")
            object.__setattr__(self, "price", price)
        object.__setattr__(self, "name", self.name.strip())

    def as_row(self) -> dict[str, object]:
        return {"name": self.name, "price": self.price, "active": self.active}


def _coerce_item(entry: LineItemLike) -> LineItemInput:
    if isinstance(entry, LineItemInput):
        return entry
    if isinstance(entry, Mapping):
        try:
            return LineItemInput(product_id=entry["product_id"], quantity=entry["quantity"])
        except KeyError as exc:
            raise CallerInputError(f"line item is missing {exc.args[0]!r}") from None
    try:
        product_id, quantity = entry
    except (TypeError, ValueError):
        raise CallerInputError(f"invalid line item: {entry!r}") from None
    return LineItemInput(product_id=product_id, quantity=quantity)


def _coerce_price(value: object) -> Decimal:
    if isinstance(value, bool):
        raise CallerInputError(f"invalid price: {value!r}")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise CallerInputError(f"invalid price: {value!r}") from None
    if not price.is_finite():
        raise CallerInputError(f"invalid price: {value!r}")
    return price
