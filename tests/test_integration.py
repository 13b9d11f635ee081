import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from territory.main import create_app
from territory.persistence.filesystem import FileStorage
from territory.services.analysis import AnalysisJobRegistry
from territory.services.analysis.reference import ReferenceData

SALES_CSV = (
    "Адрес;РМ;Бренд;Объем;Дата\n"
    "г. Москва ул. Ленина 1;Иванов;Alpha;100;15.01.2024\n"
    "Москва Ленина 1;Иванов;Alpha;50;20.02.2024\n"
    "г. Казань ул. Баумана 5;Петров;Beta;30;01.03.2024\n"
).encode("utf-8")


@pytest.fixture
def api_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from territory.api.routes import analysis as analysis_routes

    monkeypatch.setattr(analysis_routes, "load_reference_data", lambda: ReferenceData())
    monkeypatch.setattr(analysis_routes, "FileStorage", lambda: FileStorage(root=tmp_path))
    monkeypatch.setattr(analysis_routes, "registry", AnalysisJobRegistry())

    return TestClient(create_app())


def test_health_endpoints(api_client: TestClient):
    assert api_client.get("/api/health").json() == {"status": "ok"}
    assert api_client.get("/api/health/sheets").json()["service"] == "google-sheets"


def test_parse_address_endpoint(api_client: TestClient):
    response = api_client.post("/api/address/parse", json={"address": "350000, Краснодарский край, г. Краснодар"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["region"] == "Краснодарский край"
    assert payload["source"] == "explicit_region"
    assert payload["city"] == "Краснодар"
    assert payload["key"] == "краснодарский краснодар"
    assert payload["is_resolved"] is True


def test_analysis_endpoint_returns_metrics_and_persists(api_client: TestClient, tmp_path: Path):
    response = api_client.post(
        "/api/analysis",
        files={"file": ("sales.csv", SALES_CSV, "text/csv")},
        data={"multiplier": "1.5", "persist": "true"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["summary"]["total_fact"] == pytest.approx(180.0)
    assert payload["summary"]["total_potential"] == pytest.approx(270.0)
    assert payload["summary"]["groups"] == 2
    assert payload["stats"]["parsed_rows"] == 3
    moscow = next(row for row in payload["rows"] if row["region"] == "Москва")
    assert moscow["fact"] == pytest.approx(150.0)
    assert moscow["monthly_fact"] == {"2024-01": 100.0, "2024-02": 50.0}

    run_dir = Path(payload["run_directory"])
    assert run_dir.parent == tmp_path / "outputs"
    assert (run_dir / "summary.json").exists()
    assert (run_dir / "groups.csv").read_text(encoding="utf-8").startswith("\ufeffРегион;РМ;Бренд")


def test_analysis_endpoint_month_window(api_client: TestClient):
    response = api_client.post(
        "/api/analysis",
        files={"file": ("sales.csv", SALES_CSV, "text/csv")},
        data={"start_month": "2024-02", "end_month": "2024-02"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["summary"]["total_fact"] == pytest.approx(50.0)
    assert payload["stats"]["filtered_rows"] == 2
    assert payload["run_directory"] is None


def test_analysis_endpoint_rejects_bad_input(api_client: TestClient):
    unsupported = api_client.post("/api/analysis", files={"file": ("sales.txt", b"a;b", "text/plain")})
    missing = api_client.post(
        "/api/analysis",
        files={"file": ("sales.csv", "Адрес;Город\nг. Москва;Москва\n".encode("utf-8"), "text/csv")},
    )
    bad_month = api_client.post(
        "/api/analysis",
        files={"file": ("sales.csv", SALES_CSV, "text/csv")},
        data={"start_month": "2024-13"},
    )
    bad_multiplier = api_client.post(
        "/api/analysis",
        files={"file": ("sales.csv", SALES_CSV, "text/csv")},
        data={"multiplier": "0"},
    )

    assert unsupported.status_code == 415
    assert missing.status_code == 422
    assert "Менеджер" in missing.json()["detail"]
    assert bad_month.status_code == 422
    assert bad_multiplier.status_code == 422


def test_analysis_job_lifecycle(api_client: TestClient):
    created = api_client.post("/api/analysis/jobs", files={"file": ("sales.csv", SALES_CSV, "text/csv")})

    assert created.status_code == 202
    job_id = created.json()["job_id"]

    payload = None
    deadline = time.monotonic() + 10
    while time.monotonic() < deadline:
        payload = api_client.get(f"/api/analysis/jobs/{job_id}").json()
        if payload["status"] in ("completed", "failed"):
            break
        time.sleep(0.05)

    assert payload["status"] == "completed"
    assert payload["result"]["summary"]["total_fact"] == pytest.approx(180.0)
    assert payload["progress"]["stage"] == "done"


def test_unknown_job_returns_404(api_client: TestClient):
    assert api_client.get("/api/analysis/jobs/missing").status_code == 404


class _OfflineSheets:
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return None


def test_analysis_reports_reference_load_failures(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from territory.api.routes import analysis as analysis_routes
    from territory.services.analysis import reference
    from territory.services.sheets import SheetsApiError

    def forbidden(client):
        raise SheetsApiError("HTTP 403", status_code=403)

    monkeypatch.setattr(reference.settings, "google_service_account_key", "{}")
    monkeypatch.setattr(reference.settings, "okb_spreadsheet_id", "okb-sheet")
    monkeypatch.setattr(reference.settings, "cache_spreadsheet_id", None)
    monkeypatch.setattr(reference, "SheetsClient", _OfflineSheets)
    monkeypatch.setattr(reference, "load_potential_clients", forbidden)
    monkeypatch.setattr(analysis_routes, "load_reference_data", reference.load_reference_data)

    response = api_client.post("/api/analysis", files={"file": ("sales.csv", SALES_CSV, "text/csv")})

    assert response.status_code == 200
    errors = response.json()["reference_errors"]
    assert len(errors) == 1
    assert errors[0].startswith("OKB could not be loaded")
    assert "HTTP 403" in errors[0]

    created = api_client.post("/api/analysis/jobs", files={"file": ("sales.csv", SALES_CSV, "text/csv")})
    job_id = created.json()["job_id"]
    payload = api_client.get(f"/api/analysis/jobs/{job_id}").json()
    assert payload["reference_errors"] == errors


def test_analysis_without_reference_failures_reports_none(api_client: TestClient):
    response = api_client.post("/api/analysis", files={"file": ("sales.csv", SALES_CSV, "text/csv")})

    assert response.json()["reference_errors"] == []
