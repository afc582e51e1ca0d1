from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Set

import httpx

from ..registry import Registry, parse_registry
from ..utils.datetime import parse_telemetry_date

logger = logging.getLogger(__name__)

_AGGREGATE_PREFIX = "/aggregates_by/submission_date/channels"


@dataclass
class DailyHistogram:
    day: date
    counts: List[int]


class TelemetryClient:
    """Async client for the telemetry aggregates service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
            headers={"User-Agent": "rootwatch/0.1"},
        )

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        *,
        allow_missing: bool = False,
    ) -> Any:
        response = await self._client.get(path, params=params)
        if allow_missing and response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def versions(self, channel: str) -> Dict[str, List[str]]:
        """Map each version reported on *channel* to its submission dates."""
        payload = await self._get_json(f"{_AGGREGATE_PREFIX}/{channel}/dates/")
        out: Dict[str, List[str]] = {}
        for row in payload or []:
            version = str(row.get("version") or "").strip()
            day = str(row.get("date") or "").strip()
            if not version or not day:
                continue
            out.setdefault(version, []).append(day)
        return out

    async def measures(self, channel: str, version: str) -> Set[str]:
        payload = await self._get_json(
            "/filters/",
            params={"channel": channel, "version": version},
            allow_missing=True,
        )
        if not payload:
            return set()
        return {str(name) for name in payload.get("metric") or []}

    async def evolution(
        self,
        channel: str,
        version: str,
        metric: str,
        dates: Sequence[str],
    ) -> List[DailyHistogram]:
        payload = await self._get_json(
            f"{_AGGREGATE_PREFIX}/{channel}/",
            params={"version": version, "dates": ",".join(dates), "metric": metric},
            allow_missing=True,
        )
        out: List[DailyHistogram] = []
        for row in (payload or {}).get("data") or []:
            day = parse_telemetry_date(row.get("date"))
            if day is None:
                logger.debug("Skipping histogram with bad date %r", row.get("date"))
                continue
            counts = [int(value or 0) for value in row.get("histogram") or []]
            out.append(DailyHistogram(day=day, counts=counts))
        return out

    async def fetch_registry(self, url: str) -> Registry:
        response = await self._client.get(url)
        response.raise_for_status()
        return parse_registry(response.json())

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TelemetryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
