"""Store client speaking the PostgREST dialect over HTTP."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from tienda.adapters.http_resilience import ResilientClient
from tienda.config.store import get_remote_store_config
from tienda.domain.errors import (
    MalformedResultError,
    ProcedureNotFoundError,
    ProcedureRejectedError,
    StoreError,
    StoreUnavailableError,
)
from tienda.domain.ports import FilterOp, StoreClient

from .schema import PostgrestErrorPayload, RowsPayload

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from tienda.config.http_resilience import ResilienceConfig
    from tienda.config.store import RemoteStoreConfig
    from tienda.domain.ports import Filter, Row

log = getLogger(__name__)

PROCEDURE_NOT_FOUND_CODE = "PGRST202"
RETURN_REPRESENTATION = {"Prefer": "return=representation"}
JSON_CONTENT = {"Content-Type": "application/json"}

type QueryParams = list[tuple[str, str]]


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _json_default(value: object) -> object:
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode(payload: object) -> bytes:
    return json.dumps(payload, default=_json_default).encode("utf-8")


def _literal(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quoted(value: object) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return _literal(value)


def _filter_param(item: Filter) -> tuple[str, str]:
    if item.op is FilterOp.IN:
        values = item.value if isinstance(item.value, tuple) else (item.value,)
        return item.column, f"in.({','.join(_quoted(value) for value in values)})"
    if item.value is None:
        return item.column, "is.null"
    return item.column, f"eq.{_literal(item.value)}"


def _select_clause(embed: Sequence[str]) -> str:
    return ",".join(["*", *(f"{name}(*)" for name in embed)])


@dataclass(slots=True)
class PostgrestStoreClient:
    """``StoreClient`` backed by a PostgREST endpoint.

    Each call opens its own ``ResilientClient`` and runs to completion under
    ``asyncio.run``; the port stays synchronous.
    """

    config: RemoteStoreConfig = field(default_factory=get_remote_store_config)
    resilience: ResilienceConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def select(
        self,
        collection: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        embed: Sequence[str] = (),
    ) -> list[Row]:
        params: QueryParams = [("select", _select_clause(embed))]
        params.extend(_filter_param(item) for item in filters)
        if order_by is not None:
            params.append(("order", f"{order_by}.asc"))
        return self._rows(self._call("GET", f"/{collection}", params=params))

    def insert(self, collection: str, rows: Sequence[Mapping[str, object]]) -> list[Row]:
        if not rows:
            return []
        payload = [dict(row) for row in rows]
        return self._rows(
            self._call(
                "POST",
                f"/{collection}",
                content=_encode(payload),
                headers={**RETURN_REPRESENTATION, **JSON_CONTENT},
            )
        )

    def update(
        self,
        collection: str,
        changes: Mapping[str, object],
        *,
        filters: Sequence[Filter],
        embed: Sequence[str] = (),
    ) -> list[Row]:
        if not filters:
            raise ValueError("refusing to update without filters")
        params: QueryParams = [_filter_param(item) for item in filters]
        params.append(("select", _select_clause(embed)))
        return self._rows(
            self._call(
                "PATCH",
                f"/{collection}",
                params=params,
                content=_encode(dict(changes)),
                headers={**RETURN_REPRESENTATION, **JSON_CONTENT},
            )
        )

    def delete(self, collection: str, *, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValueError("refusing to delete without filters")
        params: QueryParams = [_filter_param(item) for item in filters]
        return self._rows(
            self._call("DELETE", f"/{collection}", params=params, headers=RETURN_REPRESENTATION)
        )

    def invoke(self, procedure: str, payload: Mapping[str, object]) -> object:
        return self._call(
            "POST",
            f"/rpc/{procedure}",
            content=_encode(dict(payload)),
            headers=JSON_CONTENT,
            procedure=procedure,
        )

    def _call(
        self,
        method: str,
        path: str,
        *,
        params: QueryParams | None = None,
        content: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        procedure: str | None = None,
    ) -> object:
        return asyncio.run(
            self._request(
                method,
                path,
                params=params,
                content=content,
                headers=headers,
                procedure=procedure,
            )
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: QueryParams | None,
        content: bytes | None,
        headers: Mapping[str, str] | None,
        procedure: str | None,
    ) -> object:
        resilience = self.resilience or self.config.resilience
        log.debug("%s %s %s", method, path, params or "")
        try:
            async with self.client_factory(resilience) as client:
                response = await client.request(
                    method,
                    path,
                    params=httpx.QueryParams(params or []),
                    content=content,
                    headers=dict(headers) if headers else None,
                )
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(f"{method} {path} failed: {exc}") from exc

        if not response.is_success:
            raise _error_for(response, procedure=procedure)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResultError(f"{method} {path} returned invalid JSON") from exc

    def _rows(self, payload: object) -> list[Row]:
        if payload is None:
            return []
        try:
            return RowsPayload.validate_python(payload)
        except ValidationError as exc:
            raise MalformedResultError(f"expected a list of rows: {exc}") from exc


def _error_for(response: httpx.Response, *, procedure: str | None) -> StoreError:
    try:
        error = PostgrestErrorPayload.model_validate_json(response.content)
    except ValidationError:
        error = PostgrestErrorPayload(message=response.text or response.reason_phrase)
    log.error(
        "Store error %s (%s): %s",
        response.status_code,
        error.code or "no code",
        error.message,
    )
    if response.status_code >= 500:
        return StoreUnavailableError(error.message, code=error.code, details=error.details)
    if procedure is not None:
        if error.code == PROCEDURE_NOT_FOUND_CODE or response.status_code == 404:
            return ProcedureNotFoundError(procedure, code=error.code)
        return ProcedureRejectedError(error.message, code=error.code, details=error.details)
    return StoreError(error.message, code=error.code, details=error.details)


if TYPE_CHECKING:
    _store_check: StoreClient = PostgrestStoreClient()
