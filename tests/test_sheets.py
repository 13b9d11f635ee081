import re
from datetime import datetime

import httpx
import pytest

from territory.config import settings
from territory.services.sheets import CoordinateCache, FetchManyResult, SheetsApiError, SheetsClient
from territory.services.sheets.coords_cache import CACHE_HEADER, DELETED_MARKER, history_addresses
from territory.services.sheets.okb import load_potential_clients, parse_potential_clients

_CELL_RANGE_RE = re.compile(r"([A-E])(\d+)(?::([A-E])(\d+))?$")


def _client(handler, sleeps=None, **kwargs) -> SheetsClient:
    options = dict(max_retries=3, backoff_seconds=1.0, max_backoff_seconds=3.0, min_request_interval=0.0)
    options.update(kwargs)
    return SheetsClient(
        token_provider=lambda: "token",
        base_url="https://sheets.test/v4",
        transport=httpx.MockTransport(handler),
        sleep=sleeps.append if sleeps is not None else (lambda seconds: None),
        **options,
    )


class FakeSheets:
    """In-memory stand-in for ``SheetsClient`` keyed by sheet title."""

    def __init__(self, sheets=None):
        self.sheets = {title: [list(row) for row in rows] for title, rows in (sheets or {}).items()}
        self.requested_ranges = []

    @staticmethod
    def _split(range_):
        title, _, cells = range_.rpartition("!")
        return title[1:-1].replace("''", "'"), cells

    def get_sheet_titles(self, spreadsheet_id):
        return list(self.sheets)

    def get_values(self, spreadsheet_id, range_):
        self.requested_ranges.append(range_)
        title, _ = self._split(range_)
        return [list(row) for row in self.sheets.get(title, [])]

    def fetch_many(self, spreadsheet_id, ranges):
        return FetchManyResult(contents={range_: self.get_values(spreadsheet_id, range_) for range_ in ranges})

    def add_sheet(self, spreadsheet_id, title):
        self.sheets[title] = []
        return {}

    def append_values(self, spreadsheet_id, range_, values, *, value_input_option="USER_ENTERED"):
        title, _ = self._split(range_)
        self.sheets[title].extend(list(row) for row in values)
        return {}

    def update_values(self, spreadsheet_id, range_, values, *, value_input_option="USER_ENTERED"):
        title, cells = self._split(range_)
        match = _CELL_RANGE_RE.match(cells)
        first_col = ord(match.group(1)) - ord("A")
        row = self.sheets[title][int(match.group(2)) - 1]
        row.extend([""] * (first_col + len(values[0]) - len(row)))
        for offset, value in enumerate(values[0]):
            row[first_col + offset] = value
        return {}

    def batch_update_values(self, spreadsheet_id, data, *, value_input_option="USER_ENTERED"):
        for item in data:
            self.update_values(spreadsheet_id, item["range"], item["values"])
        return {}


def test_get_values_retries_rate_limits_then_succeeds():
    calls = []
    sleeps = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(429, text="quota")
        return httpx.Response(200, json={"values": [["a", 1]]})

    with _client(handler, sleeps) as client:
        values = client.get_values("sheet-id", "'Base'!A:P")

    assert values == [["a", 1]]
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]
    assert calls[0].headers["Authorization"] == "Bearer token"
    assert calls[0].url.params["valueRenderOption"] == "UNFORMATTED_VALUE"


def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, text="bad range")

    with _client(handler) as client:
        with pytest.raises(SheetsApiError) as excinfo:
            client.get_values("sheet-id", "'Base'!A:P")

    assert excinfo.value.status_code == 400
    assert len(calls) == 1


def test_server_errors_raise_after_retries_are_exhausted():
    calls = []
    sleeps = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="unavailable")

    with _client(handler, sleeps) as client:
        with pytest.raises(SheetsApiError) as excinfo:
            client.get_values("sheet-id", "'Base'!A:P")

    assert excinfo.value.status_code == 503
    assert len(calls) == 4
    assert sleeps == [1.0, 2.0, 3.0]


def test_transport_errors_become_connection_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    with _client(handler, max_retries=1) as client:
        with pytest.raises(ConnectionError):
            client.get_sheet_titles("sheet-id")


def test_backoff_is_capped():
    with _client(lambda request: httpx.Response(200, json={})) as client:
        assert [client.backoff_delay(attempt) for attempt in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]


def test_fetch_many_collects_errors_per_range():
    def handler(request: httpx.Request) -> httpx.Response:
        if "Broken" in str(request.url):
            return httpx.Response(403, text="forbidden")
        return httpx.Response(200, json={"values": [["ok"]]})

    with _client(handler, max_parallel_fetches=2) as client:
        result = client.fetch_many("sheet-id", ["'One'!A:E", "'Two'!A:E", "'Broken'!A:E"])

    assert result.contents == {"'One'!A:E": [["ok"]], "'Two'!A:E": [["ok"]]}
    assert list(result.errors) == ["'Broken'!A:E"]


def test_client_requires_credentials(monkeypatch):
    monkeypatch.setattr(settings, "google_service_account_key", None)

    with pytest.raises(ValueError):
        SheetsClient()


def test_parse_potential_clients():
    values = [
        ["Наименование", "Адрес", "Регион", "Широта", "Долгота"],
        ["ТТ 1", "г. Москва, ул. Ленина 1", "Москва", "55,75", 37.61],
        ["", "", "", "", ""],
        ["", "г. Казань, ул. Баумана 5"],
    ]

    clients = parse_potential_clients(values)

    assert len(clients) == 2
    assert clients[0].name == "ТТ 1"
    assert clients[0].region == "Москва"
    assert clients[0].latitude == pytest.approx(55.75)
    assert clients[1].name == "г. Казань, ул. Баумана 5"
    assert clients[1].latitude is None


def test_load_potential_clients_reads_configured_range(monkeypatch):
    monkeypatch.setattr(settings, "okb_sheet_name", "Base")
    monkeypatch.setattr(settings, "okb_range", "A:P")
    fake = FakeSheets({"Base": [["Наименование", "Адрес"], ["ТТ 1", "г. Москва"]]})

    clients = load_potential_clients(fake, spreadsheet_id="okb-id")

    assert [client.name for client in clients] == ["ТТ 1"]
    assert fake.requested_ranges == ["'Base'!A:P"]


def test_load_potential_clients_requires_spreadsheet(monkeypatch):
    monkeypatch.setattr(settings, "okb_spreadsheet_id", None)

    with pytest.raises(ValueError):
        load_potential_clients(FakeSheets())


def _cache():
    fake = FakeSheets(
        {
            "Иванов": [
                list(CACHE_HEADER),
                ["г. Москва, ул. Ленина 1", 55.75, 37.61, "", ""],
                ["г. Москва, ул. Старая 1", DELETED_MARKER, DELETED_MARKER, "", ""],
                ["г. Казань", "не найдено", "", "", ""],
            ]
        }
    )
    return fake, CoordinateCache(fake, spreadsheet_id="cache-id")


def test_load_all_parses_markers():
    _, cache = _cache()

    entries = cache.load_all()["Иванов"]

    assert [entry.address for entry in entries] == ["г. Москва, ул. Ленина 1", "г. Москва, ул. Старая 1", "г. Казань"]
    assert entries[0].row_number == 2
    assert (entries[0].latitude, entries[0].longitude) == (55.75, 37.61)
    assert entries[1].is_deleted
    assert entries[2].is_invalid
    assert entries[2].latitude is None


def test_append_skips_cached_addresses_and_creates_sheets():
    fake, cache = _cache()

    added = cache.append("Иванов", [["г. Москва ул. Ленина 1", 1, 2], ["г. Москва, ул. Новая 2", 3, 4]])
    created = cache.append("Петров", [["г. Казань, ул. Баумана 5", 5, 6]])

    assert added == 1
    assert fake.sheets["Иванов"][-1] == ["г. Москва, ул. Новая 2", 3, 4, "", ""]
    assert created == 1
    assert fake.sheets["Петров"][0] == list(CACHE_HEADER)


def test_update_address_records_history_and_is_found_by_old_address():
    fake, cache = _cache()

    entry = cache.update_address(
        "Иванов",
        "г. Москва, ул. Ленина 1",
        "г. Москва, ул. Ленина 1А",
        comment="уточнено",
        now=datetime(2024, 2, 1, 10, 0, 0),
    )

    assert entry.address == "г. Москва, ул. Ленина 1А"
    assert entry.history == "г. Москва, ул. Ленина 1 [01.02.2024, 10:00:00]"
    assert entry.comment == "уточнено"
    assert history_addresses(entry.history) == ["г. Москва, ул. Ленина 1"]
    assert cache.get_address("Иванов", "г. Москва, ул. Ленина 1").address == "г. Москва, ул. Ленина 1А"


def test_update_address_rejects_empty_value():
    _, cache = _cache()

    with pytest.raises(ValueError):
        cache.update_address("Иванов", "г. Москва, ул. Ленина 1", "  ")


def test_update_coordinates_only_touches_known_addresses():
    fake, cache = _cache()

    updated = cache.update_coordinates("Иванов", [("г. Москва, ул. Ленина 1", 1.5, 2.5), ("нет такого", 0.0, 0.0)])

    assert updated == 1
    assert fake.sheets["Иванов"][1][1:3] == [1.5, 2.5]


def test_delete_address_is_soft():
    fake, cache = _cache()

    assert cache.delete_address("Иванов", "г. Москва, ул. Ленина 1")
    assert fake.sheets["Иванов"][1][:3] == ["г. Москва, ул. Ленина 1", DELETED_MARKER, DELETED_MARKER]
    assert cache.get_address("Иванов", "г. Москва, ул. Ленина 1") is None
    assert not cache.delete_address("Сидоров", "г. Москва, ул. Ленина 1")
