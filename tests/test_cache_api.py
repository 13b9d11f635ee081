from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from territory.main import create_app
from territory.models.domain import CacheEntry
from territory.services.sheets import SheetsApiError


class StubCache:
    def __init__(self):
        self.entries = {
            "Иванов": [
                CacheEntry(
                    manager="Иванов",
                    address="г. Москва, ул. Ленина 1",
                    latitude=55.75,
                    longitude=37.61,
                    history="Москва Ленина 1 [01.02.2024, 10:00:00]",
                    row_number=2,
                ),
                CacheEntry(manager="Иванов", address="г. Москва, ул. Мира 3", is_deleted=True, row_number=3),
            ]
        }
        self.calls = []

    def load_all(self):
        return self.entries

    def get_address(self, manager, address):
        self.calls.append(("get", manager, address))
        if address in ("г. Москва, ул. Ленина 1", "Москва Ленина 1"):
            return self.entries["Иванов"][0]
        return None

    def append(self, manager, rows):
        self.calls.append(("append", manager, rows))
        return len(rows)

    def update_coordinates(self, manager, updates):
        self.calls.append(("coordinates", manager, updates))
        return len(updates)

    def update_address(self, manager, old_address, new_address, *, comment=None, latitude=None, longitude=None):
        self.calls.append(("update", manager, old_address, new_address, comment, latitude, longitude))
        if not new_address.strip():
            raise ValueError("New address must not be empty.")
        return CacheEntry(
            manager=manager,
            address=new_address,
            latitude=latitude,
            longitude=longitude,
            history=f"{old_address} [19.10.2026, 12:00:00]",
            comment=comment,
            row_number=2,
        )

    def delete_address(self, manager, address):
        self.calls.append(("delete", manager, address))
        return address == "г. Москва, ул. Ленина 1"


@pytest.fixture
def stub_cache() -> StubCache:
    return StubCache()


@pytest.fixture
def api_client(stub_cache: StubCache, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from territory.api.routes import cache as cache_routes

    @contextmanager
    def open_stub():
        yield stub_cache

    monkeypatch.setattr(cache_routes, "open_cache", open_stub)
    return TestClient(create_app())


def test_full_cache_hides_deleted_entries(api_client: TestClient):
    response = api_client.get("/api/cache")

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 1
    entry = payload["managers"]["Иванов"][0]
    assert entry["address"] == "г. Москва, ул. Ленина 1"
    assert entry["previous_addresses"] == ["Москва Ленина 1"]


def test_lookup_by_previous_address(api_client: TestClient):
    found = api_client.get("/api/cache/Иванов/address", params={"address": "Москва Ленина 1"})
    missing = api_client.get("/api/cache/Иванов/address", params={"address": "г. Тверь"})

    assert found.status_code == 200
    assert found.json()["latitude"] == pytest.approx(55.75)
    assert missing.status_code == 404


def test_correct_address_records_history(api_client: TestClient, stub_cache: StubCache):
    response = api_client.put(
        "/api/cache/Иванов/address",
        json={
            "old_address": "Москва Ленина 1",
            "new_address": "г. Москва, ул. Ленина, д. 1",
            "comment": "исправлено",
            "latitude": 55.75,
            "longitude": 37.61,
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["address"] == "г. Москва, ул. Ленина, д. 1"
    assert payload["previous_addresses"] == ["Москва Ленина 1"]
    assert stub_cache.calls[-1] == (
        "update", "Иванов", "Москва Ленина 1", "г. Москва, ул. Ленина, д. 1", "исправлено", 55.75, 37.61
    )


def test_correct_address_rejects_bad_input(api_client: TestClient):
    half_coordinates = api_client.put(
        "/api/cache/Иванов/address",
        json={"old_address": "a", "new_address": "b", "latitude": 55.0},
    )
    blank = api_client.put("/api/cache/Иванов/address", json={"old_address": "a", "new_address": "   "})
    empty = api_client.put("/api/cache/Иванов/address", json={"old_address": "a", "new_address": ""})

    assert half_coordinates.status_code == 422
    assert blank.status_code == 422
    assert empty.status_code == 422


def test_delete_marks_address(api_client: TestClient, stub_cache: StubCache):
    deleted = api_client.delete("/api/cache/Иванов/address", params={"address": "г. Москва, ул. Ленина 1"})
    missing = api_client.delete("/api/cache/Иванов/address", params={"address": "г. Тверь"})

    assert deleted.status_code == 204
    assert missing.status_code == 404
    assert ("delete", "Иванов", "г. Москва, ул. Ленина 1") in stub_cache.calls


def test_append_and_coordinate_updates(api_client: TestClient, stub_cache: StubCache):
    appended = api_client.post(
        "/api/cache/Петров",
        json={"rows": [{"address": "г. Казань, ул. Баумана 5"}, {"address": "г. Казань", "latitude": 55.8, "longitude": 49.1}]},
    )
    updated = api_client.put(
        "/api/cache/Петров/coordinates",
        json={"updates": [{"address": "г. Казань, ул. Баумана 5", "latitude": 55.79, "longitude": 49.12}]},
    )

    assert appended.json() == {"added": 2}
    assert stub_cache.calls[0] == ("append", "Петров", [["г. Казань, ул. Баумана 5", "", ""], ["г. Казань", 55.8, 49.1]])
    assert updated.json() == {"updated": 1}
    assert stub_cache.calls[1] == ("coordinates", "Петров", [("г. Казань, ул. Баумана 5", 55.79, 49.12)])


def test_cache_requires_configuration():
    client = TestClient(create_app())

    assert client.get("/api/cache").status_code == 503


class _OfflineSheets:
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return None


class _FailingCache:
    def __init__(self, client):
        self.client = client

    def load_all(self):
        raise SheetsApiError("HTTP 500 after retries", status_code=500)


def test_sheets_failures_become_bad_gateway(monkeypatch: pytest.MonkeyPatch):
    from territory.api.routes import cache as cache_routes

    monkeypatch.setattr(cache_routes.settings, "google_service_account_key", "{}")
    monkeypatch.setattr(cache_routes.settings, "cache_spreadsheet_id", "cache-sheet")
    monkeypatch.setattr(cache_routes, "SheetsClient", _OfflineSheets)
    monkeypatch.setattr(cache_routes, "CoordinateCache", _FailingCache)

    response = TestClient(create_app()).get("/api/cache")

    assert response.status_code == 502
    assert "HTTP 500" in response.json()["detail"]
