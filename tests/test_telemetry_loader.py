"""Tests for rootwatch.telemetry — client parsing and concurrent loading."""

from __future__ import annotations

import asyncio
import base64
from dataclasses import replace
from datetime import date

import httpx

from rootwatch.config import get_settings
from rootwatch.model import DeliveryStatus, MetricKind
from rootwatch.telemetry.client import TelemetryClient
from rootwatch.telemetry.loader import TelemetryLoader, chunk_dates, load_dashboard

from tests.registry_fixtures import build_dashboard

SUCCESS = MetricKind.VALIDATION_SUCCESS
FAILURE = MetricKind.PINNING_FAILURE
_BASE = "https://telemetry.test"

_DATES = {
    "nightly": [
        {"date": "20150601", "version": "60"},
        {"date": "20150602", "version": "60"},
        {"date": "20150603", "version": "60"},
        {"date": "20150601", "version": "59"},
    ],
    "beta": [{"date": "20150601", "version": "58"}],
}
_HISTOGRAMS = {
    SUCCESS.value: [1, 2, 0, 7],
    FAILURE.value: [0, 1, 0, 0],
}


def _handler(broken=()):
    calls = []

    def handle(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = request.url.params
        calls.append((path, dict(params)))
        if path.endswith("/dates/"):
            channel = path.split("/")[-3]
            return httpx.Response(200, json=_DATES.get(channel, []))
        if path == "/filters/":
            if params["channel"] == "beta":
                return httpx.Response(200, json={"metric": [SUCCESS.value]})
            return httpx.Response(
                200, json={"metric": [SUCCESS.value, FAILURE.value, "GC_MS"]}
            )
        if path == "/registry.json":
            return httpx.Response(
                200,
                json={
                    "roots": [
                        {"label": "Root_A", "sha256Fingerprint": base64.b64encode(b"\x01").decode()},
                        {"label": "Root_B"},
                    ],
                    "maxBin": 2,
                },
            )
        channel = path.rstrip("/").split("/")[-1]
        source = f"{channel}/{params['version']}"
        if (source, params["metric"]) in broken:
            return httpx.Response(500, json={"error": "boom"})
        data = [
            {"date": day, "histogram": _HISTOGRAMS[params["metric"]]}
            for day in params["dates"].split(",")
        ]
        return httpx.Response(200, json={"data": data})

    return handle, calls


def _client(handler):
    return TelemetryClient(_BASE, transport=httpx.MockTransport(handler))


def _settings(**overrides):
    defaults = dict(
        telemetry_channels="nightly,beta",
        telemetry_dates_per_request=2,
        telemetry_max_concurrency=3,
        load_on_startup=False,
    )
    defaults.update(overrides)
    return replace(get_settings(), **defaults)


def _run_loader(dashboard, handler, settings):
    async def _go():
        async with _client(handler) as client:
            return await TelemetryLoader(client, dashboard, settings).run()

    return asyncio.run(_go())


def test_chunk_dates_sorts_and_dedupes():
    assert chunk_dates(["3", "1", "2", "1"], 2) == [["1", "2"], ["3"]]
    assert chunk_dates([], 5) == []


def test_client_groups_versions_and_parses_histograms():
    handler, _ = _handler()

    async def _go():
        async with _client(handler) as client:
            versions = await client.versions("nightly")
            histograms = await client.evolution(
                "nightly", "60", SUCCESS.value, ["20150601", "20150602"]
            )
            return versions, histograms

    versions, histograms = asyncio.run(_go())
    assert versions == {"60": ["20150601", "20150602", "20150603"], "59": ["20150601"]}
    assert [h.day for h in histograms] == [date(2015, 6, 1), date(2015, 6, 2)]
    assert histograms[0].counts == [1, 2, 0, 7]


def test_client_treats_missing_measures_as_empty():
    def handle(request):
        return httpx.Response(404)

    async def _go():
        async with _client(handle) as client:
            return await client.measures("nightly", "1")

    assert asyncio.run(_go()) == set()


def test_loader_declares_qualifying_sources_and_aggregates():
    handler, calls = _handler()
    dashboard = build_dashboard(["Root_One", "Root_Two", "Root_Three"])

    result = _run_loader(dashboard, handler, _settings())

    assert result.sources_seen == 3
    assert result.sources_declared == 2
    assert result.errors == []
    assert "beta/58" not in dashboard.sources
    # nightly/60 has two date chunks per metric, nightly/59 one.
    assert result.deliveries == 6
    assert dashboard.sources.all_complete()

    first = dashboard.detail(0)
    second = dashboard.detail(1)
    assert first.successes == 4
    assert (second.successes, second.failures) == (8, 4)
    assert dashboard.store.dropped_samples > 0
    metric_calls = [p for path, p in calls if "metric" in p]
    assert all(len(p["dates"].split(",")) <= 2 for p in metric_calls)


def test_loader_failure_leaves_source_incomplete():
    handler, _ = _handler(broken={("nightly/59", FAILURE.value)})
    dashboard = build_dashboard(["Root_One", "Root_Two", "Root_Three"])

    result = _run_loader(dashboard, handler, _settings())

    assert len(result.errors) == 1
    assert "nightly/59" in result.errors[0]
    assert dashboard.sources.get("nightly/60").status is DeliveryStatus.COMPLETE
    assert dashboard.sources.get("nightly/59").status is DeliveryStatus.IN_PROGRESS
    assert not dashboard.sources.all_complete()
    assert dashboard.detail(1).successes == 8


def test_loader_respects_version_limit():
    handler, _ = _handler()
    dashboard = build_dashboard(["Root_One", "Root_Two", "Root_Three"])

    _run_loader(dashboard, handler, _settings(telemetry_max_versions_per_channel=1))

    assert [s.source_id for s in dashboard.sources.sources()] == ["nightly/60"]


def test_load_dashboard_fetches_registry_over_http():
    handler, _ = _handler()
    settings = _settings(registry_url=f"{_BASE}/registry.json")

    async def _go():
        async with _client(handler) as client:
            return await load_dashboard(settings, client)

    dashboard, result = asyncio.run(_go())
    assert dashboard.registry.bound == 2
    assert result.sources_declared == 2
    rows = dashboard.row_models()
    assert [row.label for row in rows] == ["Root A", "Root B"]
    assert dashboard.detail(0).fingerprint == "01"
