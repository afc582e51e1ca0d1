"""Core records shared by the store, the source set and the view.

An :class:`Entity` is one certificate authority addressed by its registry
index. It keeps two growing maps per metric kind: cumulative counts per
source, and per-date counts per source used only for time series.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Set, Tuple

from .utils.text import format_fingerprint, truncate_label


class DataContractError(ValueError):
    """A collaborator broke the data contract; this is a bug, not a runtime condition."""


class UnknownMetricError(DataContractError):
    pass


class UnknownSortKeyError(DataContractError):
    pass


class UnknownSourceError(DataContractError):
    pass


class EntityNotFoundError(DataContractError):
    pass


class RegistryError(ValueError):
    """Registry data is missing or malformed."""


class MetricKind(str, Enum):
    VALIDATION_SUCCESS = "CERT_VALIDATION_SUCCESS_BY_CA"
    PINNING_FAILURE = "CERT_PINNING_FAILURES_BY_CA"

    @classmethod
    def parse(cls, value: "MetricKind | str") -> "MetricKind":
        if isinstance(value, MetricKind):
            return value
        text = str(value or "").strip()
        alias = _METRIC_ALIASES.get(text.lower())
        if alias is not None:
            return alias
        try:
            return cls(text)
        except ValueError:
            raise UnknownMetricError(f"Unknown measure: {value!r}") from None


_METRIC_ALIASES = {
    "success": MetricKind.VALIDATION_SUCCESS,
    "validation_success": MetricKind.VALIDATION_SUCCESS,
    "validationsuccess": MetricKind.VALIDATION_SUCCESS,
    "failure": MetricKind.PINNING_FAILURE,
    "pinning_failure": MetricKind.PINNING_FAILURE,
    "pinningfailure": MetricKind.PINNING_FAILURE,
}

REQUIRED_METRICS: Tuple[MetricKind, ...] = (
    MetricKind.VALIDATION_SUCCESS,
    MetricKind.PINNING_FAILURE,
)


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


def make_source_id(channel: str, version: str) -> str:
    return f"{str(channel).strip()}/{str(version).strip()}"


@dataclass
class Source:
    source_id: str
    enabled: bool = True
    status: DeliveryStatus = DeliveryStatus.PENDING
    expected_deliveries: int = 0
    delivered: Set[Tuple[MetricKind, str]] = field(default_factory=set)

    @property
    def channel(self) -> str:
        return self.source_id.partition("/")[0]

    @property
    def version(self) -> str:
        return self.source_id.partition("/")[2]


def _empty_metric_map() -> Dict[MetricKind, Dict]:
    return {metric: {} for metric in MetricKind}


@dataclass
class Entity:
    index: int
    label: str
    fingerprint: bytes = b""
    counts_by_source: Dict[MetricKind, Dict[str, int]] = field(
        default_factory=_empty_metric_map
    )
    counts_by_date_by_source: Dict[MetricKind, Dict[date, Dict[str, int]]] = field(
        default_factory=_empty_metric_map
    )

    def display_label(self, max_length: int = 50) -> str:
        return truncate_label(self.label, max_length)

    @property
    def fingerprint_hex(self) -> str:
        return format_fingerprint(self.fingerprint)

    def source_count(self, metric: MetricKind, source_id: str) -> int:
        return self.counts_by_source[metric].get(source_id, 0)
