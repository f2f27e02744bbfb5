from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from conftest import ABC_RECORDS, seed
from perfmon.api.deps import get_monitor_service
from perfmon.db.session import create_engine_for, create_session_factory, init_db
from perfmon.engine.store import RecordStore
from perfmon.main import app
from perfmon.services.monitor_service import MonitorService


def _override_service(db_path: Path, *, create: bool = True, records=()):
    engine = create_engine_for(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    store = RecordStore(create_session_factory(engine))

    async def _prepare():
        if create:
            await init_db(engine)
        await seed(store, *records)

    asyncio.run(_prepare())
    app.dependency_overrides[get_monitor_service] = lambda: MonitorService(store)
    return engine


@pytest.fixture
def client(tmp_path: Path):
    engine = _override_service(tmp_path / "api-test.db", records=ABC_RECORDS)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        asyncio.run(engine.dispose())


@pytest.fixture
def empty_client(tmp_path: Path):
    engine = _override_service(tmp_path / "api-empty.db")
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        asyncio.run(engine.dispose())


def _assert_error(response, status_code: int, code: str) -> dict:
    assert response.status_code == status_code
    payload = response.json()
    assert payload["success"] is False
    assert payload["data"] is None
    assert payload["error"]["code"] == code
    assert payload["error"]["message"]
    assert payload["meta"]["request_id"]
    return payload["error"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ok"
    assert response.headers["x-request-id"]


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"x-request-id": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_list_logs_defaults_to_newest_first(client):
    response = client.get("/logs")
    assert response.status_code == 200
    body = response.json()
    assert [r["id"] for r in body["records"]] == ["c", "b", "a"]
    assert body["pagination"] == {"page": 1, "page_size": 50, "total": 3, "total_pages": 1}
    assert body["records"][1]["requested_at"] == "2024-06-18T10:30:00Z"
    assert body["filters_applied"] == {}


def test_list_logs_with_filters_and_paging(client):
    response = client.get(
        "/logs",
        params={"status": "all", "search": "static", "limit": 1, "page": 2, "sort_field": "latency_ms", "sort_direction": "asc"},
    )
    body = response.json()
    assert [r["id"] for r in body["records"]] == ["a"]
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["total_pages"] == 2
    assert body["filters_applied"] == {"search": "static"}


def test_list_logs_ignores_malformed_filters(client):
    response = client.get("/logs", params={"start_date": "yesterday-ish", "status": "weird"})
    assert response.json()["pagination"]["total"] == 3


@pytest.mark.parametrize(
    "params, constraint",
    [
        ({"page": 0}, "page"),
        ({"limit": 0}, "page_size"),
        ({"limit": 100000}, "page_size"),
        ({"sort_field": "nope"}, "sort_field"),
        ({"sort_direction": "up"}, "sort_direction"),
    ],
)
def test_list_logs_rejects_bad_paging(client, params, constraint):
    error = _assert_error(client.get("/logs", params=params), 400, "INVALID_REQUEST")
    assert error["details"] == {"constraint": constraint}


def test_record_call_then_list(empty_client):
    response = empty_client.post(
        "/logs",
        json={
            "api_name": "get-static-data",
            "status_code": 200,
            "latency_ms": 70,
            "detail": "Static data retrieved",
            "requested_at": "2024-06-18T13:45:00+02:00",
        },
    )
    assert response.status_code == 201
    record_id = response.json()["id"]

    listing = empty_client.get("/logs").json()
    assert [r["id"] for r in listing["records"]] == [record_id]
    assert listing["records"][0]["requested_at"] == "2024-06-18T11:45:00Z"


def test_record_call_defaults_detail_and_time(empty_client):
    response = empty_client.post("/logs", json={"api_name": "ping", "status_code": 204, "latency_ms": 0, "detail": None})
    assert response.status_code == 201

    (record,) = empty_client.get("/logs").json()["records"]
    assert record["detail"] == ""
    assert record["requested_at"].endswith("Z")


@pytest.mark.parametrize(
    "body",
    [
        {"api_name": "", "status_code": 200, "latency_ms": 1},
        {"api_name": "   ", "status_code": 200, "latency_ms": 1},
        {"api_name": "a", "status_code": 700, "latency_ms": 1},
        {"api_name": "a", "status_code": 200, "latency_ms": -5},
        {"api_name": "a", "status_code": 200, "latency_ms": 1, "requested_at": "not a time"},
        {"status_code": 200, "latency_ms": 1},
    ],
)
def test_record_call_validation(empty_client, body):
    error = _assert_error(empty_client.post("/logs", json=body), 422, "VALIDATION_ERROR")
    assert error["details"]
    assert empty_client.get("/logs").json()["pagination"]["total"] == 0


def test_logs_by_date_range(client):
    response = client.get("/logs/date", params={"start": "2024-06-18", "end": "2024-06-18"})
    body = response.json()
    assert body["pagination"]["total"] == 3
    assert body["filters_applied"] == {
        "start_date": "2024-06-18T00:00:00Z",
        "end_date": "2024-06-18T23:59:59Z",
    }

    narrow = client.get("/logs/date", params={"start": "2024-06-18T10:00:00Z", "end": "2024-06-18T11:00:00Z"})
    assert [r["id"] for r in narrow.json()["records"]] == ["b"]


def test_logs_by_date_requires_both_bounds(client):
    error = _assert_error(client.get("/logs/date", params={"start": "2024-06-18"}), 400, "INVALID_REQUEST")
    assert error["details"] == {"constraint": "end"}

    error = _assert_error(client.get("/logs/date", params={"start": "garbage", "end": "2024-06-18"}), 400, "INVALID_REQUEST")
    assert error["details"] == {"constraint": "start"}


def test_logs_by_api_and_status(client):
    by_api = client.get("/logs/api/get-static-data").json()
    assert sorted(r["id"] for r in by_api["records"]) == ["a", "c"]

    by_status = client.get("/logs/status/500").json()
    assert [r["id"] for r in by_status["records"]] == ["b"]

    assert client.get("/logs/api/X").json()["pagination"]["total"] == 0


def test_dashboard_stats(client):
    body = client.get("/dashboard/stats").json()
    assert body["total_calls"] == 3
    assert body["success_rate"] == 67
    assert body["error_rate"] == 33
    assert body["avg_latency"] == 150
    assert (body["min_latency"], body["max_latency"]) == (50, 300)
    assert body["slowest_call"]["id"] == "b"
    assert body["slowest_call"]["requested_at"] == "2024-06-18T10:30:00Z"


def test_dashboard_stats_with_no_match(client):
    body = client.get("/dashboard/stats", params={"api_name": "X"}).json()
    assert body["total_calls"] == 0
    assert body["slowest_call"] is None
    assert body["filters_applied"] == {"api_name": "X"}


def test_dashboard_timeline(client):
    body = client.get("/dashboard/timeline", params={"status": "success"}).json()
    assert body["bucket_minutes"] == 60
    assert [(b["bucket_start"], b["requests"]) for b in body["buckets"]] == [
        ("2024-06-18T09:00:00Z", 1),
        ("2024-06-18T11:00:00Z", 1),
    ]

    _assert_error(client.get("/dashboard/timeline", params={"bucket_minutes": 5}), 422, "VALIDATION_ERROR")


def test_reports(client):
    assert client.get("/api-names").json() == ["event-stagedb-sync", "get-static-data"]

    stats = client.get("/reports/api-stats").json()
    assert stats[0] == {
        "api_name": "get-static-data",
        "status_code": 200,
        "frequency": 2,
        "avg_latency": 75,
        "min_latency": 50,
        "max_latency": 100,
    }

    performance = client.get("/reports/api-performance").json()
    assert [p["api_name"] for p in performance] == ["event-stagedb-sync", "get-static-data"]
    assert performance[1]["slowest_at"] == "2024-06-18T09:15:00Z"

    failures = client.get("/reports/failures").json()
    assert len(failures) == 1
    assert failures[0]["api_name"] == "event-stagedb-sync"
    assert failures[0]["most_common_status"] == 500


def test_store_failure_maps_to_503(tmp_path: Path):
    engine = _override_service(tmp_path / "no-tables.db", create=False)
    try:
        response = TestClient(app).get("/logs")
        error = _assert_error(response, 503, "STORE_UNAVAILABLE")
        assert error["details"] == {"operation": "fetch_page"}
    finally:
        app.dependency_overrides.clear()
        asyncio.run(engine.dispose())


def test_unknown_route_uses_error_envelope(client):
    error = _assert_error(client.get("/nowhere"), 404, "NOT_FOUND")
    assert error["details"] is None


def test_huge_status_filter_is_treated_as_absent(client):
    response = client.get("/logs", params={"status": "99999999999999999999"})
    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 3
    assert response.json()["filters_applied"] == {}


@pytest.mark.parametrize("code", ["99", "600", "99999999999999999999"])
def test_status_path_outside_valid_range_is_rejected(client, code):
    _assert_error(client.get(f"/logs/status/{code}"), 422, "VALIDATION_ERROR")


def test_logs_by_api_matches_all_literally(empty_client):
    for name in ("all", "get-static-data"):
        response = empty_client.post("/logs", json={"api_name": name, "status_code": 200, "latency_ms": 5})
        assert response.status_code == 201

    by_path = empty_client.get("/logs/api/all").json()
    assert [r["api_name"] for r in by_path["records"]] == ["all"]
    assert by_path["filters_applied"] == {"api_name": "all"}

    # as a query filter "all" still means no constraint
    assert empty_client.get("/logs", params={"api_name": "all"}).json()["pagination"]["total"] == 2
