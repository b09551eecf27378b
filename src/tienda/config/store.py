"""Store backend configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .env import env_choice, require_env_vars
from .http_resilience import (
    IDEMPOTENT_METHODS,
    CacheConfig,
    ResilienceConfig,
    RetryPolicy,
)

REST_PATH = "/rest/v1"
STORE_TIMEOUT_SECONDS = 15.0
CATALOG_CACHE_TTL_SECONDS = 60.0


class StoreBackend(StrEnum):
    SQLALCHEMY = "sqlalchemy"
    POSTGREST = "postgrest"


@dataclass(frozen=True, slots=True)
class RemoteStoreConfig:
    """Connection settings for a PostgREST-compatible remote store."""

    url: str
    api_key: str
    resilience: ResilienceConfig
    catalog_resilience: ResilienceConfig

    @property
    def rest_url(self) -> str:
        return self.url.rstrip("/") + REST_PATH


def _cache_row_lists(payload: object) -> bool:
    return isinstance(payload, list)


def _auth_headers(api_key: str) -> dict[str, str]:
    return {
        "apikey": api_key,
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
    }


def get_store_backend() -> StoreBackend:
    return env_choice("TIENDA_STORE_BACKEND", StoreBackend, StoreBackend.SQLALCHEMY)


def get_remote_store_config(
    *,
    resilience: ResilienceConfig | None = None,
    catalog_resilience: ResilienceConfig | None = None,
) -> RemoteStoreConfig:
    values = require_env_vars(("TIENDA_STORE_URL", "TIENDA_STORE_KEY"))
    url = values["TIENDA_STORE_URL"]
    headers = _auth_headers(values["TIENDA_STORE_KEY"])
    base_url = url.rstrip("/") + REST_PATH
    return RemoteStoreConfig(
        url=url,
        api_key=values["TIENDA_STORE_KEY"],
        resilience=resilience
        or ResilienceConfig(
            name="store",
            base_url=base_url,
            timeout_seconds=STORE_TIMEOUT_SECONDS,
            # inserts and procedure calls go out once; a retry could apply them twice
            retry=RetryPolicy(allowed_methods=IDEMPOTENT_METHODS),
            cache=None,
            default_headers=headers,
        ),
        catalog_resilience=catalog_resilience
        or ResilienceConfig(
            name="catalog",
            base_url=base_url,
            timeout_seconds=STORE_TIMEOUT_SECONDS,
            cache=CacheConfig(
                backend="sqlite",
                default_ttl_seconds=CATALOG_CACHE_TTL_SECONDS,
                should_cache=_cache_row_lists,
            ),
            default_headers=headers,
        ),
    )
