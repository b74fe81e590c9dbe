"""Shared Pydantic base models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SyncBase(BaseModel):
    """Base model for rows read from Supabase."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class CamelModel(SyncBase):
    """API payloads use camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel)


class ErrorDetail(BaseModel):
    detail: str
