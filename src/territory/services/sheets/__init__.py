"""Google Sheets integration."""

from .client import FetchManyResult, SheetsApiError, SheetsClient
from .coords_cache import CoordinateCache, index_entries
from .okb import load_potential_clients

__all__ = [
    "CoordinateCache",
    "FetchManyResult",
    "SheetsApiError",
    "SheetsClient",
    "index_entries",
    "load_potential_clients",
]
