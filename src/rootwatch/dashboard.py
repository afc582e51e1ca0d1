"""Dashboard facade.

Owns the aggregation store, the declared sources, the sort state and the
row view, and exposes the event surface that collaborators drive:
source declaration, sample delivery, completion, toggling and sorting.
All calls are synchronous; asynchronous delivery resumes here as ordinary
function calls on the event-loop thread.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .config import Settings, get_settings
from .model import Entity, EntityNotFoundError, MetricKind, REQUIRED_METRICS
from .ordering import SortState, sort_entities
from .registry import Registry
from .schemas import EntityDetail, RowViewModel, SeriesPoint, SourceView
from .sources import SourceSet, enabled_time_series, enabled_total
from .store import AggregationStore, coerce_sample
from .view import RenderPass, RowHandle, ViewReconciler

logger = logging.getLogger(__name__)

Sample = Tuple[int, date, int]


class Dashboard:
    def __init__(
        self,
        registry: Registry,
        settings: Optional[Settings] = None,
        *,
        on_render: Optional[Callable[[RenderPass], None]] = None,
        on_select: Optional[Callable[[EntityDetail], Any]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry
        self.store = AggregationStore(registry)
        self.sources = SourceSet()
        self.sort_state = SortState()
        self.view = ViewReconciler(
            on_select=self._select_entity,
            max_label_length=self.settings.max_label_length,
        )
        self.on_render = on_render
        self.on_select = on_select
        self.render_count = 0
        self.sources.add_all_complete_listener(self._on_all_complete)

    # ── Ingestion events ──────────────────────────────────────────

    def declare_source(self, source_id: str) -> None:
        self.sources.declare(source_id)

    def ingest(
        self,
        entity_index: int,
        source_id: str,
        metric: "MetricKind | str",
        day: date,
        count: int,
    ) -> Optional[Entity]:
        """Apply one raw sample from a declared source."""
        self.sources.get(source_id)
        entity = self.store.ingest(entity_index, source_id, metric, day, count)
        self.sources.mark_in_progress(source_id)
        return entity

    def deliver(
        self,
        source_id: str,
        metric: "MetricKind | str",
        range_key: str,
        samples: Iterable[Sample],
    ) -> int:
        """Apply one sub-range delivery; returns the number of samples kept.

        A sub-range already delivered for this (source, metric) is skipped
        rather than doubled. Every sample is checked before anything is
        applied, so a rejected delivery leaves the sub-range undelivered.
        When the delivery is the last one the source was expecting, the
        source completes.
        """
        kind = MetricKind.parse(metric)
        checked = [
            (entity_index, *coerce_sample(day, count))
            for entity_index, day, count in samples
        ]
        if not self.sources.record_delivery(source_id, kind, range_key):
            return 0
        kept = 0
        for entity_index, day, count in checked:
            if self.store.ingest(entity_index, source_id, kind, day, count) is not None:
                kept += 1
        source = self.sources.get(source_id)
        if source.expected_deliveries and not self.sources.deliveries_outstanding(
            source_id
        ):
            self.complete(source_id)
        return kept

    def complete(self, source_id: str) -> bool:
        if not self.sources.mark_complete(source_id):
            return False
        self.render()
        return True

    def _on_all_complete(self) -> None:
        logger.info(
            "All sources complete: %d entities, %d dropped samples",
            len(self.store),
            self.store.dropped_samples,
        )

    # ── Local re-derivation ───────────────────────────────────────

    def toggle_source(self, source_id: str, enabled: Optional[bool] = None) -> RenderPass:
        self.sources.set_enabled(source_id, enabled)
        return self.render()

    def select_sort(self, key: str) -> RenderPass:
        self.sort_state.select(key)
        return self.render()

    def render(self) -> RenderPass:
        ordered = sort_entities(self.store.entities(), self.sort_state, self.sources)
        result = self.view.reconcile(ordered, self.sources)
        self.render_count += 1
        if self.on_render is not None:
            self.on_render(result)
        return result

    # ── Detail data ───────────────────────────────────────────────

    def entity(self, index: int) -> Entity:
        entity = self.store.get(index)
        if entity is None:
            raise EntityNotFoundError(f"No data for entity index {index}")
        return entity

    def time_series(self, index: int, metric: "MetricKind | str") -> List[SeriesPoint]:
        kind = MetricKind.parse(metric)
        return [
            SeriesPoint(timestamp=ts, count=count)
            for ts, count in enabled_time_series(self.entity(index), kind, self.sources)
        ]

    def detail(self, index: int) -> EntityDetail:
        entity = self.entity(index)
        success, failure = REQUIRED_METRICS
        return EntityDetail(
            index=entity.index,
            label=entity.label,
            display_label=entity.display_label(self.settings.max_label_length),
            fingerprint=entity.fingerprint_hex,
            successes=enabled_total(entity, success, self.sources),
            failures=enabled_total(entity, failure, self.sources),
            success_series=self.time_series(index, success),
            failure_series=self.time_series(index, failure),
        )

    def _select_entity(self, entity: Entity) -> EntityDetail:
        detail = self.detail(entity.index)
        if self.on_select is not None:
            self.on_select(detail)
        return detail

    def select_row(self, position: int) -> Any:
        if not 0 <= position < len(self.view.rows):
            raise IndexError(f"No row at position {position}")
        return self.view.rows[position].fire()

    # ── Read models ───────────────────────────────────────────────

    @staticmethod
    def _row_model(row: RowHandle) -> RowViewModel:
        return RowViewModel(
            row_id=row.row_id,
            position=row.position,
            entity_index=row.entity_index,
            label=row.cells.label,
            successes=row.cells.successes,
            failures=row.cells.failures,
            status=row.status.value,
        )

    def row_models(self) -> List[RowViewModel]:
        return [self._row_model(row) for row in self.view.rows]

    def source_models(self) -> List[SourceView]:
        return [
            SourceView(
                source_id=s.source_id,
                channel=s.channel,
                version=s.version,
                enabled=s.enabled,
                status=s.status.value,
            )
            for s in self.sources.sources()
        ]
