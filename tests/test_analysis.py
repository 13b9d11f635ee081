import queue
from datetime import date

import pytest

from territory.data.region_lookup import get_region_lookup
from territory.models.domain import CacheEntry, PotentialClient
from territory.services.analysis import (
    AnalysisJobRegistry,
    AnalysisOptions,
    AnalysisWorker,
    ProgressUpdate,
    WorkerMessage,
    run_analysis,
)
from territory.services.analysis.worker import AnalysisJob
from territory.services.ingest import MissingColumnsError


def _table():
    return [
        ["Адрес ТТ", "РМ", "Бренд", "Объем", "Дата"],
        ["г. Москва, ул. Ленина 1", "Иванов", "Alpha", 100, "2024-01-01"],
        ["Москва Ленина 1", "Иванов", "Alpha", 50, "2024-01-11"],
        ["г. Москва, ул. Ленина 1", "Иванов", "Alpha", 100, "2024-01-21"],
        ["г. Казань, ул. Баумана 5", "Петров", "Beta, Gamma", 40, "2024-01-15"],
        ["г. Москва, ул. Старая 1", "Иванов", "Alpha", 10, "2024-01-15"],
        ["ул. Неизвестная 5", "Петров", "Beta", 5, "2024-01-15"],
        ["Итого", "", "", 305, ""],
        ["г. Казань", "Петров", "Beta", "", ""],
    ]


@pytest.fixture(autouse=True)
def clear_region_lookup():
    get_region_lookup.cache_clear()
    yield
    get_region_lookup.cache_clear()


def test_run_analysis_end_to_end():
    potential = [
        PotentialClient(name="ТТ 1", address="г. Москва, ул. Ленина 1"),
        PotentialClient(name="ТТ 2", address="г. Москва, ул. Тверская 5"),
    ]
    cache = {"Иванов": [CacheEntry(manager="Иванов", address="г. Москва, ул. Старая 1", is_deleted=True)]}
    updates = []

    result = run_analysis(
        _table(),
        potential,
        cache,
        AnalysisOptions(multiplier=1.2, as_of=date(2024, 2, 25)),
        updates.append,
    )

    assert result.stats == {
        "parsed_rows": 6,
        "dropped_rows": 1,
        "skipped_total_rows": 1,
        "filtered_rows": 0,
        "deleted_rows": 1,
        "unidentified_rows": 1,
    }
    assert result.summary.total_fact == pytest.approx(295.0)
    moscow = next(row for row in result.rows if row.region == "Москва")
    assert moscow.fact == pytest.approx(250.0)
    assert moscow.potential == pytest.approx(300.0)
    assert moscow.total_market_tts == 2
    assert moscow.potential_tts == 1
    kazan = [row for row in result.rows if row.region == "Республика Татарстан"]
    assert sorted(row.brand for row in kazan) == ["Beta", "Gamma"]
    assert {item.region for item in result.coverage} == {"Москва", "Республика Татарстан"}
    assert result.column_map["address"] == "Адрес ТТ"
    assert result.filters.managers == ["Иванов", "Петров"]

    moscow_client = next(client for client in result.clients if client.key == "москва ленина 1")
    assert moscow_client.abc_category == "B"
    assert [metric.client_key for metric in result.churn] == ["москва ленина 1"]
    assert result.churn[0].risk_score == 70
    assert result.churn[0].risk_level == "High"

    assert updates[0].stage == "parse"
    assert updates[-1].stage == "done"
    assert updates[-1].percent == 100.0
    assert any(update.stage == "resolve" for update in updates)


def test_run_analysis_propagates_missing_columns():
    with pytest.raises(MissingColumnsError):
        run_analysis([["Адрес", "Город"], ["г. Москва", "Москва"]])


def test_run_analysis_month_window():
    result = run_analysis(_table(), options=AnalysisOptions(start_month="2024-01", end_month="2024-01"))

    assert result.stats["filtered_rows"] == 0

    result = run_analysis(_table(), options=AnalysisOptions(start_month="2024-02"))

    assert result.rows == []
    assert result.stats["filtered_rows"] == 6


class StubWorker:
    def __init__(self):
        self.outbox = queue.Queue()
        self.jobs = []

    def submit(self, job):
        self.jobs.append(job)


def test_registry_ignores_messages_from_superseded_jobs():
    worker = StubWorker()
    registry = AnalysisJobRegistry(worker=worker)

    first = registry.submit(_table())
    second = registry.submit(_table())

    assert registry.current_job_id == second
    assert registry.get(first).status == "superseded"
    assert not registry.apply(WorkerMessage(first, "result", "late result"))
    assert registry.get(first).result is None

    progress = ProgressUpdate(stage="resolve", done=1, total=2, percent=40.0)
    assert registry.apply(WorkerMessage(second, "progress", progress))
    assert registry.get(second).status == "running"
    assert registry.get(second).progress is progress

    worker.outbox.put(WorkerMessage(second, "error", "boom"))
    status = registry.get(second)
    assert status.status == "failed"
    assert status.error == "boom"
    assert [job.job_id for job in worker.jobs] == [first, second]


def test_registry_keeps_only_the_newest_jobs():
    worker = StubWorker()
    registry = AnalysisJobRegistry(worker=worker, max_jobs=2)

    first = registry.submit(_table())
    second = registry.submit(_table())
    third = registry.submit(_table())

    assert registry.get(first) is None
    assert registry.get(second).status == "superseded"
    assert registry.get(third).status == "queued"


def test_registry_attaches_reference_errors_to_the_result():
    worker = StubWorker()
    registry = AnalysisJobRegistry(worker=worker)

    job_id = registry.submit(_table(), reference_errors=["OKB could not be loaded: HTTP 403"])
    registry.apply(WorkerMessage(job_id, "result", run_analysis(_table())))

    status = registry.get(job_id)
    assert status.status == "completed"
    assert status.reference_errors == ["OKB could not be loaded: HTTP 403"]
    assert status.result.reference_errors == ["OKB could not be loaded: HTTP 403"]


def test_worker_posts_progress_then_result():
    def runner(table, potential_clients, cache_entries, options, on_progress):
        on_progress(ProgressUpdate(stage="parse", done=0, total=0, percent=0.0))
        return "result"

    worker = AnalysisWorker(runner=runner)
    try:
        worker.submit(AnalysisJob("job-1", table=[]))
        messages = [worker.outbox.get(timeout=5), worker.outbox.get(timeout=5)]
    finally:
        worker.stop(timeout=5)

    assert [message.kind for message in messages] == ["progress", "result"]
    assert messages[1].payload == "result"
    assert all(message.job_id == "job-1" for message in messages)


def test_worker_reports_errors_as_messages():
    def runner(*args):
        raise ValueError("bad table")

    worker = AnalysisWorker(runner=runner)
    try:
        worker.submit(AnalysisJob("job-2", table=[]))
        message = worker.outbox.get(timeout=5)
    finally:
        worker.stop(timeout=5)

    assert message == WorkerMessage("job-2", "error", "bad table")
