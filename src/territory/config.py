"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TERRITORY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Territory Analytics API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for run outputs.")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Aggregation parameters
    potential_multiplier: float = Field(
        default=1.2,
        gt=0.0,
        description="Fallback potential estimate as a multiple of fact when no reference potential exists.",
    )
    coordinate_key_precision: int = Field(
        default=4,
        ge=0,
        le=8,
        description="Decimal places used when grouping clients by coordinates (4 ~ 11 m).",
    )
    coverage_min_potential: int = Field(
        default=0,
        ge=0,
        description="Regions with fewer potential clients than this are left out of coverage output.",
    )
    analysis_max_jobs: int = Field(
        default=10,
        ge=1,
        description="Background analysis jobs kept for polling; older ones are dropped first.",
    )
    plan_base_rate: float = Field(
        default=15.0,
        description="Base yearly growth rate, in percent, for the per-group plan.",
    )

    # Google Sheets configuration
    google_service_account_key: Optional[str] = Field(
        default=None,
        description="Service account credentials as a JSON string.",
    )
    okb_spreadsheet_id: Optional[str] = Field(
        default=None,
        description="Spreadsheet holding the potential client universe (OKB).",
    )
    okb_sheet_name: str = Field(default="Base")
    okb_range: str = Field(default="A:P")
    cache_spreadsheet_id: Optional[str] = Field(
        default=None,
        description="Spreadsheet holding the per-manager address coordinate cache.",
    )
    sheets_base_url: str = Field(default="https://sheets.googleapis.com/v4")
    sheets_timeout_seconds: float = Field(default=30.0, gt=0.0)
    sheets_max_retries: int = Field(default=5, ge=0)
    sheets_backoff_seconds: float = Field(default=2.0, ge=0.0)
    sheets_max_backoff_seconds: float = Field(default=30.0, ge=0.0)
    sheets_min_request_interval: float = Field(default=0.25, ge=0.0)
    sheets_max_parallel_fetches: int = Field(default=6, ge=1, le=8)

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @property
    def sheets_configured(self) -> bool:
        return bool(self.google_service_account_key)


settings = Settings()
