"""Certificate-authority telemetry aggregation and row view."""

from .dashboard import Dashboard
from .model import DeliveryStatus, Entity, MetricKind, Source
from .registry import Registry, RegistryEntry, load_registry, parse_registry

__all__ = [
    "Dashboard",
    "DeliveryStatus",
    "Entity",
    "MetricKind",
    "Registry",
    "RegistryEntry",
    "Source",
    "load_registry",
    "parse_registry",
]

__version__ = "0.1.0"
