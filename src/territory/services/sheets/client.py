"""HTTP client for the Google Sheets v4 REST API."""

from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from ...config import settings

SCOPES = ("https://www.googleapis.com/auth/spreadsheets",)
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

logger = logging.getLogger(__name__)


class SheetsApiError(RuntimeError):
    """Non-retryable (or retry-exhausted) error returned by the Sheets API."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, context: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.context = context


@dataclass(slots=True)
class FetchManyResult:
    contents: dict[str, list[list[Any]]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


def quote_sheet_title(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


class ServiceAccountTokenProvider:
    """Supplies bearer tokens for a service account, refreshing when expired."""

    def __init__(self, credentials_info: dict[str, Any], scopes: Sequence[str] = SCOPES) -> None:
        self._credentials = service_account.Credentials.from_service_account_info(
            credentials_info, scopes=list(scopes)
        )
        self._lock = threading.Lock()

    @classmethod
    def from_json(cls, payload: str) -> "ServiceAccountTokenProvider":
        try:
            info = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError("Google service account key is not valid JSON.") from exc
        return cls(info)

    def __call__(self) -> str:
        with self._lock:
            if not self._credentials.valid:
                self._credentials.refresh(GoogleAuthRequest())
            return self._credentials.token


class SheetsClient:
    """Throttled, retrying access to spreadsheet values and metadata.

    Transient failures (429, 5xx, transport errors) are retried with
    exponential backoff capped at ``max_backoff_seconds``; any other 4xx is
    raised immediately as ``SheetsApiError``.
    """

    def __init__(
        self,
        *,
        token_provider: Optional[Callable[[], str]] = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_backoff_seconds: float | None = None,
        min_request_interval: float | None = None,
        max_parallel_fetches: int | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if token_provider is None:
            if not settings.google_service_account_key:
                raise ValueError("Google service account key is not configured.")
            token_provider = ServiceAccountTokenProvider.from_json(settings.google_service_account_key)
        self._token_provider = token_provider
        self.base_url = (base_url or settings.sheets_base_url).rstrip("/")
        self.max_retries = max_retries if max_retries is not None else settings.sheets_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.sheets_backoff_seconds
        self.max_backoff_seconds = (
            max_backoff_seconds if max_backoff_seconds is not None else settings.sheets_max_backoff_seconds
        )
        self.min_request_interval = (
            min_request_interval if min_request_interval is not None else settings.sheets_min_request_interval
        )
        self.max_parallel_fetches = max_parallel_fetches or settings.sheets_max_parallel_fetches
        self._sleep = sleep
        self._http = httpx.Client(
            timeout=httpx.Timeout(timeout or settings.sheets_timeout_seconds, connect=10.0),
            transport=transport,
        )
        self._throttle_lock = threading.Lock()
        self._last_request_at = 0.0

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SheetsClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _throttle(self) -> None:
        with self._throttle_lock:
            wait = self.min_request_interval - (time.monotonic() - self._last_request_at)
            if wait > 0:
                self._sleep(wait)
            self._last_request_at = time.monotonic()

    def backoff_delay(self, attempt: int) -> float:
        return min(self.backoff_seconds * (2 ** (attempt - 1)), self.max_backoff_seconds)

    def _request(
        self,
        method: str,
        path: str,
        *,
        context: str,
        params: Any = None,
        payload: Optional[dict] = None,
    ) -> dict:
        url = f"{self.base_url}/{path}"
        attempt = 0
        while True:
            self._throttle()
            try:
                response = self._http.request(
                    method,
                    url,
                    params=params,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._token_provider()}"},
                )
            except httpx.TransportError as exc:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning("Sheets request %s failed after %d attempts: %s", context, self.max_retries, exc)
                    raise ConnectionError(f"Google Sheets is not reachable ({context}): {exc}") from exc
                wait_time = self.backoff_delay(attempt)
                logger.debug(
                    "Sheets transport error on %s, retrying in %.1fs (attempt %d/%d): %s",
                    context,
                    wait_time,
                    attempt,
                    self.max_retries,
                    exc,
                )
                self._sleep(wait_time)
                continue

            if response.status_code < 400:
                return response.json() if response.content else {}

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                attempt += 1
                wait_time = self.backoff_delay(attempt)
                logger.debug(
                    "Sheets returned %d on %s, retrying in %.1fs (attempt %d/%d)",
                    response.status_code,
                    context,
                    wait_time,
                    attempt,
                    self.max_retries,
                )
                self._sleep(wait_time)
                continue

            raise SheetsApiError(
                f"Google Sheets request {context} failed with HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                context=context,
            )

    def get_sheet_titles(self, spreadsheet_id: str) -> list[str]:
        data = self._request(
            "GET",
            f"spreadsheets/{spreadsheet_id}",
            params={"fields": "sheets.properties.title"},
            context="get-sheet-titles",
        )
        titles = [sheet.get("properties", {}).get("title") for sheet in data.get("sheets", [])]
        return [title for title in titles if title]

    def get_values(self, spreadsheet_id: str, range_: str) -> list[list[Any]]:
        data = self._request(
            "GET",
            f"spreadsheets/{spreadsheet_id}/values/{quote(range_, safe='')}",
            params={"valueRenderOption": "UNFORMATTED_VALUE"},
            context=f"get-values {range_}",
        )
        return data.get("values", [])

    def append_values(
        self,
        spreadsheet_id: str,
        range_: str,
        values: Sequence[Sequence[Any]],
        *,
        value_input_option: str = "USER_ENTERED",
    ) -> dict:
        return self._request(
            "POST",
            f"spreadsheets/{spreadsheet_id}/values/{quote(range_, safe='')}:append",
            params={"valueInputOption": value_input_option, "insertDataOption": "INSERT_ROWS"},
            payload={"values": [list(row) for row in values]},
            context=f"append {range_}",
        )

    def update_values(
        self,
        spreadsheet_id: str,
        range_: str,
        values: Sequence[Sequence[Any]],
        *,
        value_input_option: str = "USER_ENTERED",
    ) -> dict:
        return self._request(
            "PUT",
            f"spreadsheets/{spreadsheet_id}/values/{quote(range_, safe='')}",
            params={"valueInputOption": value_input_option},
            payload={"values": [list(row) for row in values]},
            context=f"update {range_}",
        )

    def batch_update_values(
        self,
        spreadsheet_id: str,
        data: Sequence[dict[str, Any]],
        *,
        value_input_option: str = "USER_ENTERED",
    ) -> dict:
        return self._request(
            "POST",
            f"spreadsheets/{spreadsheet_id}/values:batchUpdate",
            payload={"valueInputOption": value_input_option, "data": list(data)},
            context="batch-update",
        )

    def add_sheet(self, spreadsheet_id: str, title: str) -> dict:
        return self._request(
            "POST",
            f"spreadsheets/{spreadsheet_id}:batchUpdate",
            payload={"requests": [{"addSheet": {"properties": {"title": title}}}]},
            context=f"add-sheet {title}",
        )

    def fetch_many(self, spreadsheet_id: str, ranges: Sequence[str]) -> FetchManyResult:
        """Download several ranges with bounded parallelism.

        Failures are collected per range instead of aborting the batch.
        """

        result = FetchManyResult()
        if not ranges:
            return result
        workers = max(1, min(self.max_parallel_fetches, len(ranges)))
        start_time = time.time()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.get_values, spreadsheet_id, range_): range_ for range_ in ranges}
            for future in as_completed(futures):
                range_ = futures[future]
                try:
                    result.contents[range_] = future.result()
                except (SheetsApiError, ConnectionError) as exc:
                    logger.warning("Failed to fetch range %s: %s", range_, exc)
                    result.errors[range_] = str(exc)
        logger.info(
            "Fetched %d/%d ranges in %.2fs (%d workers)",
            len(result.contents),
            len(ranges),
            time.time() - start_time,
            workers,
        )
        return result
