from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .model import DataContractError, Entity, MetricKind
from .registry import Registry
from .utils.datetime import parse_telemetry_date

logger = logging.getLogger(__name__)


def coerce_sample(day: Any, count: Any) -> Tuple[date, int]:
    """Normalize a sample's date bucket and count.

    Buckets are calendar days: timestamps collapse to their UTC day and
    ``YYYYMMDD`` strings are accepted. Unusable dates and negative counts
    raise :class:`DataContractError`.
    """
    bucket = parse_telemetry_date(day)
    if bucket is None:
        raise DataContractError(f"unusable sample date {day!r}")
    value = int(count)
    if value < 0:
        raise DataContractError(f"negative count {value}")
    return bucket, value


class AggregationStore:
    """Running per-entity totals merged from (source, metric, date) samples.

    Entities are created lazily from the registry on the first sample that
    references them and are never removed. Delivery is additive: every
    sample adds to both the cumulative total and the per-date bucket, so the
    cumulative total for a (entity, metric, source) always equals the sum of
    its per-date buckets.
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry
        self._entities: Dict[int, Entity] = {}
        self.dropped_samples = 0

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, index: object) -> bool:
        return index in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities())

    def get(self, index: int) -> Optional[Entity]:
        return self._entities.get(index)

    def entities(self) -> List[Entity]:
        """All known entities in index order."""
        return [self._entities[index] for index in sorted(self._entities)]

    def _ensure_entity(self, index: int) -> Entity:
        entity = self._entities.get(index)
        if entity is None:
            entry = self.registry.lookup(index)
            entity = Entity(index=index, label=entry.label, fingerprint=entry.fingerprint)
            self._entities[index] = entity
        return entity

    def ingest(
        self,
        entity_index: int,
        source_id: str,
        metric: "MetricKind | str",
        day: date,
        count: int,
    ) -> Optional[Entity]:
        """Add *count* to the entity's totals for *source_id* and *day*.

        Returns the touched entity, or *None* when the index lies outside
        the registry bound (sources may report more bins than are known).
        """
        kind = MetricKind.parse(metric)
        day, count = coerce_sample(day, count)
        if not self.registry.contains(entity_index):
            self.dropped_samples += 1
            logger.debug(
                "Dropping sample for index %d (bound=%d) from %s",
                entity_index,
                self.registry.bound,
                source_id,
            )
            return None

        entity = self._ensure_entity(entity_index)
        totals = entity.counts_by_source[kind]
        totals[source_id] = totals.get(source_id, 0) + count
        by_source = entity.counts_by_date_by_source[kind].setdefault(day, {})
        by_source[source_id] = by_source.get(source_id, 0) + count
        return entity
