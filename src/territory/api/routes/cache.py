"""Coordinate cache endpoints used to correct unidentified addresses."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, HTTPException, Query, status

from ...config import settings
from ...models.domain import CacheEntry
from ...schemas.cache import (
    AddressUpdateRequest,
    AppendRowsRequest,
    AppendRowsResponse,
    CacheEntryModel,
    CacheResponse,
    CoordinateUpdateRequest,
    CoordinateUpdateResponse,
)
from ...services.sheets import CoordinateCache, SheetsApiError, SheetsClient
from ...services.sheets.coords_cache import history_addresses

router = APIRouter(prefix="/cache", tags=["cache"])

logger = logging.getLogger(__name__)


@contextmanager
def open_cache() -> Iterator[CoordinateCache]:
    if not settings.sheets_configured or not settings.cache_spreadsheet_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Coordinate cache is not configured.",
        )
    try:
        with SheetsClient() as client:
            yield CoordinateCache(client)
    except (SheetsApiError, ConnectionError) as exc:
        logger.warning("Coordinate cache request failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


def _entry_model(entry: CacheEntry) -> CacheEntryModel:
    return CacheEntryModel(
        manager=entry.manager,
        address=entry.address,
        latitude=entry.latitude,
        longitude=entry.longitude,
        comment=entry.comment,
        is_invalid=entry.is_invalid,
        previous_addresses=history_addresses(entry.history),
        row_number=entry.row_number,
    )


@router.get("", response_model=CacheResponse, status_code=status.HTTP_200_OK)
def get_full_cache() -> CacheResponse:
    with open_cache() as cache:
        entries = cache.load_all()
    managers = {
        manager: [_entry_model(entry) for entry in items if not entry.is_deleted]
        for manager, items in entries.items()
    }
    return CacheResponse(managers=managers, total=sum(len(items) for items in managers.values()))


@router.get("/{manager}/address", response_model=CacheEntryModel, status_code=status.HTTP_200_OK)
def get_cached_address(
    manager: str,
    address: str = Query(..., min_length=1, description="Current or previous address"),
) -> CacheEntryModel:
    with open_cache() as cache:
        entry = cache.get_address(manager, address)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Address '{address}' is not cached.")
    return _entry_model(entry)


@router.post("/{manager}", response_model=AppendRowsResponse, status_code=status.HTTP_200_OK)
def append_addresses(manager: str, payload: AppendRowsRequest) -> AppendRowsResponse:
    rows = [
        [row.address, "" if row.latitude is None else row.latitude, "" if row.longitude is None else row.longitude]
        for row in payload.rows
    ]
    with open_cache() as cache:
        added = cache.append(manager, rows)
    return AppendRowsResponse(added=added)


@router.put("/{manager}/coordinates", response_model=CoordinateUpdateResponse, status_code=status.HTTP_200_OK)
def update_coordinates(manager: str, payload: CoordinateUpdateRequest) -> CoordinateUpdateResponse:
    updates = [(item.address, item.latitude, item.longitude) for item in payload.updates]
    with open_cache() as cache:
        updated = cache.update_coordinates(manager, updates)
    return CoordinateUpdateResponse(updated=updated)


@router.put("/{manager}/address", response_model=CacheEntryModel, status_code=status.HTTP_200_OK)
def update_address(manager: str, payload: AddressUpdateRequest) -> CacheEntryModel:
    """Correct an address; the previous value is kept in the history column."""

    if (payload.latitude is None) != (payload.longitude is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="latitude and longitude must be given together.",
        )
    with open_cache() as cache:
        try:
            entry = cache.update_address(
                manager,
                payload.old_address,
                payload.new_address,
                comment=payload.comment,
                latitude=payload.latitude,
                longitude=payload.longitude,
            )
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _entry_model(entry)


@router.delete("/{manager}/address", status_code=status.HTTP_204_NO_CONTENT)
def delete_address(
    manager: str,
    address: str = Query(..., min_length=1, description="Address to mark as deleted"),
) -> None:
    with open_cache() as cache:
        deleted = cache.delete_address(manager, address)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Address '{address}' is not cached.")
