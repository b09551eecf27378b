"""Application configuration helpers."""

from __future__ import annotations

from .env import env_choice, env_flag, require_env_var, require_env_vars
from .errors import ConfigurationError, InvalidChoiceError, MissingConfigurationError
from .http_resilience import (
    IDEMPOTENT_METHODS,
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
)
from .logging import configure_logging
from .mutations import get_mutation_policy
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .store import RemoteStoreConfig, StoreBackend, get_remote_store_config, get_store_backend

__all__ = [
    "IDEMPOTENT_METHODS",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidChoiceError",
    "MissingConfigurationError",
    "RateLimit",
    "RemoteStoreConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "StoreBackend",
    "configure_logging",
    "env_choice",
    "env_flag",
    "get_database_config",
    "get_mutation_policy",
    "get_remote_store_config",
    "get_storage_config",
    "get_store_backend",
    "require_env_var",
    "require_env_vars",
]
