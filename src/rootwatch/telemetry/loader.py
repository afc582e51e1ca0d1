"""Telemetry loader.

Discovers (channel, version) sources, declares those that report both
certificate metrics, and fetches every (metric, date-chunk) sub-range
concurrently. Each response is handed to the dashboard as one delivery;
a source completes once all of its sub-ranges have arrived.

Run a one-shot load with ``python -m rootwatch.telemetry.loader``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import httpx

from ..config import Settings, get_settings, validate_settings
from ..dashboard import Dashboard
from ..model import REQUIRED_METRICS, MetricKind, make_source_id
from ..ordering import DESCENDING, SortKey, SortState
from ..registry import Registry, load_registry
from .client import TelemetryClient

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    sources_seen: int = 0
    sources_declared: int = 0
    deliveries: int = 0
    samples: int = 0
    errors: List[str] = field(default_factory=list)


def _version_sort_key(version: str) -> Tuple[int, str]:
    try:
        return int(version.split(".", 1)[0]), version
    except ValueError:
        return -1, version


def chunk_dates(dates: Sequence[str], size: int) -> List[List[str]]:
    ordered = sorted(set(dates))
    size = max(int(size), 1)
    return [ordered[i : i + size] for i in range(0, len(ordered), size)]


class TelemetryLoader:
    def __init__(
        self,
        client: TelemetryClient,
        dashboard: Dashboard,
        settings: Optional[Settings] = None,
    ) -> None:
        self.client = client
        self.dashboard = dashboard
        self.settings = settings or dashboard.settings
        self.result = LoadResult()
        self._semaphore = asyncio.Semaphore(self.settings.telemetry_max_concurrency)

    async def run(self) -> LoadResult:
        discovered = await asyncio.gather(
            *[
                self._discover(channel)
                for channel in self.settings.telemetry_channels_list
            ]
        )
        await asyncio.gather(
            *[
                self._load_source(channel, version, dates)
                for found in discovered
                for channel, version, dates in found
            ]
        )
        logger.info(
            "Telemetry load finished: %d/%d sources declared, %d deliveries, "
            "%d samples, %d errors",
            self.result.sources_declared,
            self.result.sources_seen,
            self.result.deliveries,
            self.result.samples,
            len(self.result.errors),
        )
        return self.result

    async def _discover(self, channel: str) -> List[Tuple[str, str, List[str]]]:
        try:
            async with self._semaphore:
                versions = await self.client.versions(channel)
        except (httpx.HTTPError, ValueError) as exc:
            self.result.errors.append(f"{channel}: version discovery failed: {exc}")
            logger.warning("Version discovery failed for %s: %s", channel, exc)
            return []
        names = sorted(versions, key=_version_sort_key)
        limit = self.settings.telemetry_max_versions_per_channel
        if limit > 0:
            names = names[-limit:]
        return [(channel, name, versions[name]) for name in names]

    async def _load_source(self, channel: str, version: str, dates: List[str]) -> None:
        self.result.sources_seen += 1
        try:
            async with self._semaphore:
                measures = await self.client.measures(channel, version)
        except (httpx.HTTPError, ValueError) as exc:
            self.result.errors.append(f"{channel}/{version}: measures failed: {exc}")
            logger.warning("Measure listing failed for %s/%s: %s", channel, version, exc)
            return
        if not all(metric.value in measures for metric in REQUIRED_METRICS):
            logger.debug("%s/%s lacks certificate metrics; skipped", channel, version)
            return

        source_id = make_source_id(channel, version)
        self.dashboard.declare_source(source_id)
        self.result.sources_declared += 1

        chunks = chunk_dates(dates, self.settings.telemetry_dates_per_request)
        self.dashboard.sources.begin(source_id, len(REQUIRED_METRICS) * len(chunks))
        if not chunks:
            self.dashboard.complete(source_id)
            return
        await asyncio.gather(
            *[
                self._load_chunk(source_id, channel, version, metric, chunk)
                for metric in REQUIRED_METRICS
                for chunk in chunks
            ]
        )

    async def _load_chunk(
        self,
        source_id: str,
        channel: str,
        version: str,
        metric: MetricKind,
        chunk: List[str],
    ) -> None:
        range_key = f"{chunk[0]}-{chunk[-1]}"
        try:
            async with self._semaphore:
                histograms = await self.client.evolution(
                    channel, version, metric.value, chunk
                )
        except (httpx.HTTPError, ValueError) as exc:
            self.result.errors.append(
                f"{source_id}: {metric.value} {range_key} failed: {exc}"
            )
            logger.warning(
                "Fetch failed for %s %s %s: %s", source_id, metric.value, range_key, exc
            )
            return
        samples = [
            (index, histogram.day, count)
            for histogram in histograms
            for index, count in enumerate(histogram.counts)
        ]
        kept = self.dashboard.deliver(source_id, metric, range_key, samples)
        self.result.deliveries += 1
        self.result.samples += kept


async def resolve_registry(settings: Settings, client: TelemetryClient) -> Registry:
    if settings.registry_url:
        return await client.fetch_registry(settings.registry_url)
    return load_registry(settings.registry_path)


async def load_dashboard(
    settings: Settings,
    client: TelemetryClient,
    dashboard: Optional[Dashboard] = None,
) -> Tuple[Dashboard, LoadResult]:
    if dashboard is None:
        registry = await resolve_registry(settings, client)
        dashboard = Dashboard(registry, settings)
    result = await TelemetryLoader(client, dashboard, settings).run()
    dashboard.render()
    return dashboard, result


async def _run_once() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    validate_settings(settings)
    async with TelemetryClient(
        settings.telemetry_base_url, timeout=settings.telemetry_timeout_seconds
    ) as client:
        dashboard, result = await load_dashboard(settings, client)
    dashboard.sort_state = SortState(SortKey.SUCCESSES, DESCENDING)
    dashboard.render()
    for row in dashboard.row_models()[:20]:
        logger.info(
            "%-4s %-55s %10d %8d %s",
            row.row_id,
            row.label,
            row.successes,
            row.failures,
            row.status,
        )
    for err in result.errors[:5]:
        logger.warning("load error: %s", err)


def main() -> None:
    asyncio.run(_run_once())


if __name__ == "__main__":
    main()
