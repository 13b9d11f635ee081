"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/sheets", status_code=status.HTTP_200_OK)
def health_sheets() -> dict:
    """Report which Google Sheets sources are configured (no network call)."""
    return {
        "service": "google-sheets",
        "configured": settings.sheets_configured,
        "okb": bool(settings.sheets_configured and settings.okb_spreadsheet_id),
        "coordinate_cache": bool(settings.sheets_configured and settings.cache_spreadsheet_id),
    }
