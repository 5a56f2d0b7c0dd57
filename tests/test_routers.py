"""Tests for the FastAPI guide endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
import time

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.listings_store import ListingsStore, get_listings_store
from app.services.scheduler_service import ListingsWatcher, get_listings_watcher


def _wait_until(condition, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.05)
    return condition()


@pytest.fixture()
def client_for():
    watchers: list[ListingsWatcher] = []

    def _client(store: ListingsStore, start_watcher: bool = False) -> TestClient:
        watcher = ListingsWatcher(store, interval_seconds=3600)
        if start_watcher:
            watcher.start()
        watchers.append(watcher)

        app.dependency_overrides[get_listings_store] = lambda: store
        app.dependency_overrides[get_listings_watcher] = lambda: watcher
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()
    for watcher in watchers:
        watcher.shutdown()


@pytest.fixture()
def client(client_for, store: ListingsStore) -> Iterator[TestClient]:
    yield client_for(store)


def test_root(client: TestClient) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert "/guide" in resp.json()["endpoints"]["guide"]


def test_guide_serialized_shape(client: TestClient) -> None:
    resp = client.get("/guide", params={"now": "2024-03-24T01:05:00Z"})
    assert resp.status_code == 200

    body = resp.json()
    assert body["windowStart"] == "2024-03-24T01:00:00+00:00"
    assert body["windowEnd"] == "2024-03-24T02:30:00+00:00"
    assert body["slotCount"] == 3
    assert body["slotWidth"] == 30
    assert list(body["channels"]) == [
        "ch2.example",
        "ch5.example",
        "ch15.example",
        "ch25.example",
        "local.example",
    ]

    ch5 = body["channels"]["ch5.example"]
    assert ch5["abbreviation"] == "WABC"
    assert ch5["displayNumber"] == 5
    assert ch5["listings"][0] == {
        "start": "2024-03-24T01:00:00+00:00",
        "span": 60,
        "continuedLeft": False,
        "continuedRight": False,
        "title": "Morning Movie",
        "category": "movie",
        "stereo": True,
        "subtitled": True,
        "rating": "PG",
    }

    local = body["channels"]["local.example"]
    assert "abbreviation" not in local
    assert "displayNumber" not in local
    assert "category" not in local["listings"][0]
    assert "rating" not in local["listings"][0]

    assert body["channels"]["ch2.example"] == {"displayNumber": 2, "listings": []}


def test_guide_channel_range(client: TestClient) -> None:
    resp = client.get(
        "/guide",
        params={"now": "2024-03-24T01:05:00Z", "lower": 10, "upper": 20},
    )
    assert resp.status_code == 200
    assert list(resp.json()["channels"]) == ["ch15.example"]


def test_guide_is_repeatable(client: TestClient) -> None:
    params = {"now": "2024-03-24T01:05:00Z", "slots": 2, "slot_width": 60}
    first = client.get("/guide", params=params)
    second = client.get("/guide", params=params)
    assert first.content == second.content


@pytest.mark.parametrize(
    "params",
    [
        {"slot_width": 7},
        {"slots": 0},
        {"lower": 20, "upper": 10},
    ],
)
def test_guide_invalid_arguments(client: TestClient, params: dict) -> None:
    resp = client.get("/guide", params={"now": "2024-03-24T01:05:00Z", **params})
    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == "error"
    assert body["error"]["code"] == "INVALID_ARGUMENT"


def test_guide_invalid_now(client: TestClient) -> None:
    resp = client.get("/guide", params={"now": "not-a-date"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_FORMAT"


def test_guide_slot_count_capped(client: TestClient) -> None:
    resp = client.get("/guide", params={"slots": 10_000})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["context"]["errors"][0]["loc"] == ["query", "slots"]


def test_guide_not_ready(client_for, feed_file: Path) -> None:
    client = client_for(ListingsStore(feed_file))
    resp = client.get("/guide")
    assert resp.status_code == 503
    assert resp.headers["retry-after"] == "5"
    assert resp.json()["error"]["code"] == "NOT_READY"


def test_refresh_endpoint_loads_on_watcher_thread(client_for, feed_file: Path) -> None:
    store = ListingsStore(feed_file)
    client = client_for(store, start_watcher=True)

    resp = client.post("/refresh")
    assert resp.status_code == 202
    body = resp.json()
    assert body["status"] == "accepted"

    assert _wait_until(lambda: store.is_ready)
    assert len(store.snapshot().programmes) == 6


def test_refresh_endpoint_reports_current_snapshot(client_for, store: ListingsStore) -> None:
    client = client_for(store, start_watcher=True)

    resp = client.post("/refresh")
    assert resp.status_code == 202
    body = resp.json()
    assert body["listings_loaded"] is True
    assert body["channels"] == 5
    assert body["programmes"] == 6
    assert body["source_digest"] == store.snapshot().source_digest


def test_refresh_endpoint_failure_keeps_snapshot(
    client_for, store: ListingsStore, feed_file: Path, caplog: pytest.LogCaptureFixture
) -> None:
    previous = store.snapshot()
    client = client_for(store, start_watcher=True)
    feed_file.unlink()

    resp = client.post("/refresh")
    assert resp.status_code == 202

    assert _wait_until(lambda: "Requested listings refresh failed" in caplog.text)
    assert store.snapshot() is previous


def test_refresh_endpoint_without_watcher(client_for, store: ListingsStore) -> None:
    client = client_for(store)
    resp = client.post("/refresh")
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "NOT_READY"


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["listings_loaded"] is True
    assert body["programmes"] == 6
    assert body["watcher_running"] is False
    assert body["next_check"] is None


def test_health_reports_running_watcher(client_for, store: ListingsStore) -> None:
    client = client_for(store, start_watcher=True)
    body = client.get("/health").json()
    assert body["watcher_running"] is True
    assert body["next_check"] is not None
