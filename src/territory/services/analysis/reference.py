"""Load the OKB universe and the coordinate cache for an analysis run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ...config import settings
from ...models.domain import CacheEntry, PotentialClient
from ..sheets import CoordinateCache, SheetsApiError, SheetsClient, load_potential_clients

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReferenceData:
    potential_clients: list[PotentialClient] = field(default_factory=list)
    cache_entries: dict[str, list[CacheEntry]] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


def load_reference_data() -> ReferenceData:
    """Fetch reference data from Google Sheets when it is configured.

    A source that still fails after the client's retries is recorded in
    ``errors`` and left empty; the analysis runs on the uploaded file and
    the caller reports the errors alongside the result.
    """

    data = ReferenceData()
    if not settings.sheets_configured:
        return data

    with SheetsClient() as client:
        if settings.okb_spreadsheet_id:
            try:
                data.potential_clients = load_potential_clients(client)
            except (SheetsApiError, ConnectionError) as exc:
                logger.warning("OKB could not be loaded: %s", exc)
                data.errors.append(f"OKB could not be loaded: {exc}")
        if settings.cache_spreadsheet_id:
            try:
                data.cache_entries = CoordinateCache(client).load_all()
            except (SheetsApiError, ConnectionError) as exc:
                logger.warning("Coordinate cache could not be loaded: %s", exc)
                data.errors.append(f"Coordinate cache could not be loaded: {exc}")
    return data
