from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from typing import Any, Callable, Dict, List

from .model import Entity, MetricKind, UnknownSortKeyError
from .sources import SourceSet, enabled_total

ASCENDING = 1
DESCENDING = -1


class SortKey(str, Enum):
    INDEX = "index"
    LABEL = "label"
    SUCCESSES = "successes"
    FAILURES = "failures"

    @classmethod
    def parse(cls, value: "SortKey | str") -> "SortKey":
        if isinstance(value, SortKey):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            raise UnknownSortKeyError(f"Unknown sort key: {value!r}") from None


Accessor = Callable[[Entity, SourceSet], Any]

_ACCESSORS: Dict[SortKey, Accessor] = {
    SortKey.INDEX: lambda entity, sources: entity.index,
    SortKey.LABEL: lambda entity, sources: entity.label,
    SortKey.SUCCESSES: lambda entity, sources: enabled_total(
        entity, MetricKind.VALIDATION_SUCCESS, sources
    ),
    SortKey.FAILURES: lambda entity, sources: enabled_total(
        entity, MetricKind.PINNING_FAILURE, sources
    ),
}


def sort_value(entity: Entity, key: SortKey, sources: SourceSet) -> Any:
    accessor = _ACCESSORS.get(key)
    if accessor is None:
        raise UnknownSortKeyError(f"No accessor for sort key: {key!r}")
    return accessor(entity, sources)


def compare(
    a: Entity,
    b: Entity,
    key: SortKey,
    direction: int,
    sources: SourceSet,
) -> int:
    left = sort_value(a, key, sources)
    right = sort_value(b, key, sources)
    if left == right:
        return 0
    return direction if left > right else -direction


@dataclass
class SortState:
    key: SortKey = SortKey.INDEX
    direction: int = ASCENDING

    def select(self, key: "SortKey | str") -> None:
        """Pick a sort key; picking the current key again flips direction."""
        new_key = SortKey.parse(key)
        if new_key == self.key:
            self.direction = -self.direction
        else:
            self.key = new_key
            self.direction = ASCENDING


def sort_entities(
    entities: List[Entity],
    state: SortState,
    sources: SourceSet,
) -> List[Entity]:
    """Order *entities* by *state*.

    Python's sort is stable and the store hands entities over in index
    order, so ties keep index order across repeated renders.
    """
    return sorted(
        entities,
        key=cmp_to_key(
            lambda a, b: compare(a, b, state.key, state.direction, sources)
        ),
    )
