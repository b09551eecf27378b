"""Application wiring: configuration to store, catalog and gateway."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from tienda.adapters.catalog import StoreCatalogReference
from tienda.adapters.postgrest import PostgrestStoreClient
from tienda.adapters.sqlalchemy import SqlAlchemyStoreClient, is_started, startup
from tienda.config import (
    StoreBackend,
    get_mutation_policy,
    get_remote_store_config,
    get_store_backend,
)
from tienda.domain.mutations import TransactionalMutationGateway

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from tienda.domain.mutations import MutationPolicy
    from tienda.domain.ports import CatalogReference, StoreClient

log = getLogger(__name__)


def init_database(*, database_uri: str | None = None) -> Engine:
    """Create the local database schema, starting the SQLAlchemy store if needed."""

    return startup(database_uri=database_uri, force=is_started())


def build_store_and_catalog() -> tuple[StoreClient, CatalogReference]:
    backend = get_store_backend()
    log.info("Using %s store backend", backend)
    if backend is StoreBackend.POSTGREST:
        config = get_remote_store_config()
        store = PostgrestStoreClient(config)
        catalog_store = PostgrestStoreClient(config, resilience=config.catalog_resilience)
        return store, StoreCatalogReference(catalog_store)

    if not is_started():
        startup()
    store = SqlAlchemyStoreClient()
    return store, StoreCatalogReference(store)


def build_store() -> StoreClient:
    store, _catalog = build_store_and_catalog()
    return store


def build_gateway(
    *,
    store: StoreClient | None = None,
    catalog: CatalogReference | None = None,
    policy: MutationPolicy | None = None,
) -> TransactionalMutationGateway:
    """Build a gateway from explicit collaborators, filling the rest from configuration."""

    if store is None:
        store, configured_catalog = build_store_and_catalog()
        catalog = catalog or configured_catalog
    elif catalog is None:
        catalog = StoreCatalogReference(store)
    return TransactionalMutationGateway(
        store,
        policy=policy or get_mutation_policy(),
        catalog=catalog,
    )
