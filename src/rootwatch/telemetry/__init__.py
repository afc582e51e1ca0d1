"""Telemetry collaborator: source discovery and histogram retrieval.

- ``client`` — async HTTP client for the aggregates service
- ``loader`` — concurrent fetch and delivery into a :class:`~rootwatch.dashboard.Dashboard`
"""

from .client import DailyHistogram, TelemetryClient
from .loader import LoadResult, TelemetryLoader, load_dashboard

__all__ = [
    "DailyHistogram",
    "LoadResult",
    "TelemetryClient",
    "TelemetryLoader",
    "load_dashboard",
]
