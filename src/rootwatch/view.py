"""Position-keyed row reconciliation.

Rows are addressed by position (``tr0``, ``tr1``, ...), not by entity.
Each render pass rewrites the content of the row at position *i* with the
entity now sorted into position *i* and rebinds the row's select handler
to that entity. Rows are never moved or removed; the row list only grows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable, List, Optional, Sequence

from .model import Entity, MetricKind
from .sources import SourceSet, enabled_total

SelectHandler = Callable[[Entity], Any]


class RowStatus(str, Enum):
    CLEARED = ""
    NO_DATA = "unusedCA"
    NO_FAILURES = "noFailures"
    ONLY_FAILURES = "onlyFailures"
    MIXED = "someFailures"


def classify(successes: int, failures: int) -> RowStatus:
    if successes == 0 and failures == 0:
        return RowStatus.NO_DATA
    if failures == 0:
        return RowStatus.NO_FAILURES
    if successes == 0:
        return RowStatus.ONLY_FAILURES
    return RowStatus.MIXED


@dataclass(frozen=True)
class RowCells:
    label: str = ""
    successes: int = 0
    failures: int = 0


@dataclass
class RowHandle:
    position: int
    cells: RowCells = field(default_factory=RowCells)
    status: RowStatus = RowStatus.CLEARED
    entity_index: Optional[int] = None
    _handler: Optional[Callable[[], Any]] = field(default=None, repr=False)

    @property
    def row_id(self) -> str:
        return f"tr{self.position}"

    def bind(self, handler: Optional[Callable[[], Any]]) -> None:
        self._handler = handler

    def fire(self) -> Any:
        if self._handler is None:
            return None
        return self._handler()

    def clear(self) -> None:
        self.status = RowStatus.CLEARED
        self.cells = RowCells(label=self.cells.label)


@dataclass
class RenderPass:
    rows: List[RowHandle]
    created: List[int] = field(default_factory=list)
    updated: List[int] = field(default_factory=list)
    cleared: List[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.cleared)


class ViewReconciler:
    def __init__(
        self,
        on_select: Optional[SelectHandler] = None,
        max_label_length: int = 50,
    ) -> None:
        self.on_select = on_select
        self.max_label_length = max_label_length
        self.rows: List[RowHandle] = []

    def _handler_for(self, entity: Entity) -> Optional[Callable[[], Any]]:
        if self.on_select is None:
            return None
        return partial(self.on_select, entity)

    def reconcile(self, entities: Sequence[Entity], sources: SourceSet) -> RenderPass:
        result = RenderPass(rows=self.rows)
        for position, entity in enumerate(entities):
            successes = enabled_total(entity, MetricKind.VALIDATION_SUCCESS, sources)
            failures = enabled_total(entity, MetricKind.PINNING_FAILURE, sources)
            cells = RowCells(
                label=entity.display_label(self.max_label_length),
                successes=successes,
                failures=failures,
            )
            status = classify(successes, failures)

            if position >= len(self.rows):
                row = RowHandle(position=position)
                self.rows.append(row)
                result.created.append(position)
            else:
                row = self.rows[position]
                if (
                    row.cells != cells
                    or row.entity_index != entity.index
                    or row.status is not status
                ):
                    result.updated.append(position)

            row.clear()
            row.cells = cells
            row.status = status
            row.entity_index = entity.index
            row.bind(self._handler_for(entity))

        for row in self.rows[len(entities):]:
            if row.entity_index is None and row.status is RowStatus.CLEARED:
                continue
            row.clear()
            row.cells = RowCells()
            row.entity_index = None
            row.bind(None)
            result.cleared.append(row.position)
        return result
