from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from rootwatch.api.app import create_app
from rootwatch.config import get_settings
from rootwatch.model import MetricKind

from tests.registry_fixtures import D1, D2, build_dashboard

SUCCESS = MetricKind.VALIDATION_SUCCESS
FAILURE = MetricKind.PINNING_FAILURE


def _client():
    dashboard = build_dashboard(["Root_One", "Root_Two"])
    for source_id in ("nightly/60", "beta/59"):
        dashboard.declare_source(source_id)
    dashboard.ingest(0, "nightly/60", SUCCESS, D1, 10)
    dashboard.ingest(0, "nightly/60", FAILURE, D2, 2)
    dashboard.ingest(1, "beta/59", SUCCESS, D1, 30)
    settings = replace(get_settings(), load_on_startup=False)
    return TestClient(create_app(dashboard=dashboard, settings=settings))


def test_rows_render_on_first_request():
    with _client() as client:
        payload = client.get("/api/rows").json()

    assert payload["sort_key"] == "index"
    assert payload["direction"] == 1
    rows = payload["rows"]
    assert [row["row_id"] for row in rows] == ["tr0", "tr1"]
    assert rows[0]["label"] == "Root One"
    assert rows[0]["status"] == "someFailures"
    assert rows[1]["status"] == "noFailures"


def test_sources_listing():
    with _client() as client:
        sources = client.get("/api/sources").json()

    assert {s["source_id"]: s["enabled"] for s in sources} == {
        "nightly/60": True,
        "beta/59": True,
    }
    assert sources[0]["status"] == "pending"


def test_toggle_source_updates_rows():
    with _client() as client:
        payload = client.post("/api/sources/beta/59/toggle").json()
        rows = {row["entity_index"]: row for row in payload["rows"]}
        assert rows[1]["successes"] == 0
        assert rows[1]["status"] == "unusedCA"

        payload = client.post("/api/sources/beta/59/toggle", params={"enabled": "true"}).json()
        rows = {row["entity_index"]: row for row in payload["rows"]}
        assert rows[1]["successes"] == 30

        missing = client.post("/api/sources/beta/1/toggle")
        assert missing.status_code == 404


def test_sort_toggles_direction():
    with _client() as client:
        asc = client.post("/api/sort/successes").json()
        desc = client.post("/api/sort/successes").json()
        bad = client.post("/api/sort/bogus")

    assert [r["entity_index"] for r in asc["rows"]] == [0, 1]
    assert desc["direction"] == -1
    assert [r["entity_index"] for r in desc["rows"]] == [1, 0]
    assert bad.status_code == 400


def test_entity_detail_and_series():
    with _client() as client:
        detail = client.get("/api/entities/0").json()
        series = client.get("/api/entities/0/series", params={"metric": "failure"}).json()
        missing = client.get("/api/entities/9")
        bad_metric = client.get("/api/entities/0/series", params={"metric": "latency"})

    assert detail["successes"] == 10
    assert detail["failures"] == 2
    assert detail["fingerprint"] == "00:ab"
    assert [point["count"] for point in series] == [2]
    assert missing.status_code == 404
    assert bad_metric.status_code == 400


def test_select_row_returns_entity_at_position():
    with _client() as client:
        client.post("/api/sort/successes")
        client.post("/api/sort/successes")
        detail = client.post("/api/rows/0/select").json()
        missing = client.post("/api/rows/5/select")

    assert detail["index"] == 1
    assert missing.status_code == 404
