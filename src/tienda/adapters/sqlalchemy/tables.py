"""SQLAlchemy Core tables for the storefront relations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
    select,
)

from tienda.domain.errors import StoreError
from tienda.domain.ports import Collection

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Connection, Engine

    from tienda.domain.ports import Row

log = logging.getLogger(__name__)

Money = Numeric(12, 2, asdecimal=True)

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_N_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

unit_of_measure_table = Table(
    Collection.UNIT_OF_MEASURE.value,
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String, nullable=False),
    Column("abbreviation", String(16), nullable=True),
)

product_table = Table(
    Collection.PRODUCT.value,
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String, nullable=False),
    Column("description", String, nullable=True),
    Column("stock", Integer, nullable=False, default=0),
    Column("cost", Money, nullable=True),
    Column("price", Money, nullable=False),
    Column("promotion_price", Money, nullable=True),
    Column("promotion_active", Boolean, nullable=False, default=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("featured", Boolean, nullable=False, default=False),
    Column("featured_order", Integer, nullable=True),
    Column("condition", String(16), nullable=False, default="new"),
    Column("priced_in_usd", Boolean, nullable=False, default=False),
    Column("accessory", Boolean, nullable=False, default=False),
    Column(
        "unit_of_measure_id",
        Integer,
        ForeignKey(f"{unit_of_measure_table.name}.id"),
        nullable=True,
    ),
    CheckConstraint("stock >= 0", name="stock_non_negative"),
)

promotion_table = Table(
    Collection.PROMOTION.value,
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String, nullable=False),
    Column("price", Money, nullable=True),
    Column("active", Boolean, nullable=False, default=True),
    Column("image_path", String, nullable=True),
)

promotion_line_item_table = Table(
    Collection.PROMOTION_LINE_ITEM.value,
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "promotion_id",
        Integer,
        ForeignKey(f"{promotion_table.name}.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("product_id", Integer, ForeignKey(f"{product_table.name}.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    UniqueConstraint("promotion_id", "product_id"),
    CheckConstraint("quantity > 0", name="quantity_positive"),
)

TABLES: Final[dict[str, Table]] = {
    table.name: table
    for table in (
        unit_of_measure_table,
        product_table,
        promotion_table,
        promotion_line_item_table,
    )
}


@dataclass(frozen=True, slots=True)
class Embed:
    """Related rows attached to a parent row under ``target``'s name."""

    target: str
    local_column: str
    remote_column: str
    many: bool


EMBEDS: Final[dict[tuple[str, str], Embed]] = {
    (Collection.PRODUCT, Collection.UNIT_OF_MEASURE): Embed(
        Collection.UNIT_OF_MEASURE, "unit_of_measure_id", "id", many=False
    ),
    (Collection.PROMOTION, Collection.PROMOTION_LINE_ITEM): Embed(
        Collection.PROMOTION_LINE_ITEM, "id", "promotion_id", many=True
    ),
}


def table_for(collection: str) -> Table:
    try:
        return TABLES[collection]
    except KeyError:
        raise StoreError(f"unknown collection: {collection}", code="unknown_collection") from None


def attach_embeds(
    conn: Connection,
    collection: str,
    rows: list[Row],
    embed: Sequence[str],
) -> list[Row]:
    for name in embed:
        relation = EMBEDS.get((collection, name))
        if relation is None:
            raise StoreError(f"{collection} has no relation {name}", code="unknown_embed")
        target = TABLES[relation.target]
        keys = {row[relation.local_column] for row in rows if row.get(relation.local_column) is not None}
        related: dict[object, list[Row]] = {}
        if keys:
            stmt = (
                select(target)
                .where(target.c[relation.remote_column].in_(sorted(keys)))
                .order_by(target.c.id)
            )
            for match in conn.execute(stmt):
                mapped = dict(match._mapping)
                related.setdefault(mapped[relation.remote_column], []).append(mapped)
        for row in rows:
            matches = related.get(row.get(relation.local_column), [])
            row[name] = matches if relation.many else (matches[0] if matches else None)
    return rows


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the storefront metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
