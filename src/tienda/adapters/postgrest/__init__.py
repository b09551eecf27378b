"""Public interface for the PostgREST store adapter."""

from __future__ import annotations

from .client import PostgrestStoreClient
from .schema import PostgrestErrorPayload

__all__ = [
    "PostgrestErrorPayload",
    "PostgrestStoreClient",
]
