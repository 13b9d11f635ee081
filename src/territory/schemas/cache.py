"""Coordinate cache API schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class CacheEntryModel(BaseModel):
    manager: str
    address: str
    latitude: float | None = None
    longitude: float | None = None
    comment: str | None = None
    is_invalid: bool = False
    previous_addresses: List[str] = Field(default_factory=list)
    row_number: int | None = None


class CacheResponse(BaseModel):
    managers: dict[str, List[CacheEntryModel]]
    total: int


class CacheRowModel(BaseModel):
    address: str = Field(..., min_length=1)
    latitude: float | None = None
    longitude: float | None = None


class AppendRowsRequest(BaseModel):
    rows: List[CacheRowModel]


class AppendRowsResponse(BaseModel):
    added: int


class CoordinateUpdateModel(BaseModel):
    address: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class CoordinateUpdateRequest(BaseModel):
    updates: List[CoordinateUpdateModel]


class CoordinateUpdateResponse(BaseModel):
    updated: int


class AddressUpdateRequest(BaseModel):
    old_address: str = Field(..., min_length=1, description="Address as it appears in the sales file.")
    new_address: str = Field(..., min_length=1, description="Corrected address.")
    comment: str | None = None
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
