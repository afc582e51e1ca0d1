"""Declared telemetry sources and the enabled-set filter.

A :class:`SourceSet` tracks every declared (channel, version) source: its
``enabled`` flag and its delivery status. Derived values
(:func:`enabled_total`, :func:`enabled_time_series`) are recomputed on
every call from the stored counts, so toggling a source never touches the
store.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from .model import (
    DeliveryStatus,
    Entity,
    MetricKind,
    Source,
    UnknownSourceError,
)
from .utils.datetime import date_to_epoch_ms

logger = logging.getLogger(__name__)


class SourceSet:
    def __init__(self) -> None:
        self._sources: Dict[str, Source] = {}
        self._all_complete_notified = False
        self._all_complete_listeners: List[Callable[[], None]] = []

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def get(self, source_id: str) -> Source:
        source = self._sources.get(source_id)
        if source is None:
            raise UnknownSourceError(f"Undeclared source: {source_id!r}")
        return source

    def sources(self) -> List[Source]:
        return list(self._sources.values())

    def add_all_complete_listener(self, listener: Callable[[], None]) -> None:
        self._all_complete_listeners.append(listener)

    # ── Declaration & filter ──────────────────────────────────────

    def declare(self, source_id: str) -> Source:
        """Register *source_id*, enabled by default. Re-declaring is a no-op."""
        source = self._sources.get(source_id)
        if source is not None:
            return source
        source = Source(source_id=source_id)
        self._sources[source_id] = source
        self._all_complete_notified = False
        logger.info("Declared source %s", source_id)
        return source

    def is_enabled(self, source_id: str) -> bool:
        source = self._sources.get(source_id)
        return bool(source and source.enabled)

    def set_enabled(self, source_id: str, enabled: Optional[bool] = None) -> bool:
        """Set or flip (``enabled=None``) a source's flag; returns the new value."""
        source = self.get(source_id)
        source.enabled = (not source.enabled) if enabled is None else bool(enabled)
        return source.enabled

    # ── Delivery status ───────────────────────────────────────────

    def begin(self, source_id: str, expected: int) -> None:
        source = self.get(source_id)
        source.expected_deliveries = max(int(expected), 0)

    def record_delivery(
        self,
        source_id: str,
        metric: MetricKind,
        range_key: str,
    ) -> bool:
        """Note one sub-range delivery; ``False`` if it was already delivered."""
        source = self.get(source_id)
        key = (metric, range_key)
        if key in source.delivered:
            logger.warning(
                "Duplicate delivery of %s %s for %s skipped",
                metric.value,
                range_key,
                source_id,
            )
            return False
        source.delivered.add(key)
        self.mark_in_progress(source_id)
        return True

    def mark_in_progress(self, source_id: str) -> Source:
        """Note that *source_id* has started delivering data."""
        source = self.get(source_id)
        if source.status is DeliveryStatus.PENDING:
            source.status = DeliveryStatus.IN_PROGRESS
        return source

    def deliveries_outstanding(self, source_id: str) -> bool:
        source = self.get(source_id)
        return len(source.delivered) < source.expected_deliveries

    def mark_complete(self, source_id: str) -> bool:
        """Move a source to complete; ``True`` only on the transition."""
        source = self.get(source_id)
        if source.status is DeliveryStatus.COMPLETE:
            return False
        source.status = DeliveryStatus.COMPLETE
        logger.info("Source %s complete", source_id)
        if self.all_complete() and not self._all_complete_notified:
            self._all_complete_notified = True
            logger.info("All %d sources complete", len(self._sources))
            for listener in list(self._all_complete_listeners):
                listener()
        return True

    def all_complete(self) -> bool:
        return bool(self._sources) and all(
            s.status is DeliveryStatus.COMPLETE for s in self._sources.values()
        )


# ── Derived values ────────────────────────────────────────────────


def enabled_total(entity: Entity, metric: MetricKind, sources: SourceSet) -> int:
    return sum(
        count
        for source_id, count in entity.counts_by_source[metric].items()
        if sources.is_enabled(source_id)
    )


def enabled_time_series(
    entity: Entity,
    metric: MetricKind,
    sources: SourceSet,
) -> List[Tuple[int, int]]:
    """(epoch-ms, count) points in date order, omitting all-zero dates."""
    points: List[Tuple[int, int]] = []
    by_date = entity.counts_by_date_by_source[metric]
    for day in sorted(by_date):
        total = sum(
            count
            for source_id, count in by_date[day].items()
            if sources.is_enabled(source_id)
        )
        if total > 0:
            points.append((date_to_epoch_ms(day), total))
    return points
