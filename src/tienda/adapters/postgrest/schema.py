"""Pydantic models describing PostgREST payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, TypeAdapter


class PostgrestBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PostgrestErrorPayload(PostgrestBaseModel):
    """Body PostgREST sends with every non-2xx answer."""

    code: str | None = None
    message: str = "unknown error"
    details: str | None = None
    hint: str | None = None


RowsPayload: TypeAdapter[list[dict[str, object]]] = TypeAdapter(list[dict[str, object]])
