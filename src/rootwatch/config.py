from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


def _env_bool(name: str, default: str = "0") -> bool:
    value = os.getenv(name, default)
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # ── Entity registry ──────────────────────────────────────
    registry_path: str = os.getenv("ROOTWATCH_REGISTRY_PATH", "KnownRootHashes.json")
    registry_url: str = os.getenv("ROOTWATCH_REGISTRY_URL", "")
    max_label_length: int = int(os.getenv("MAX_CA_NAME_LEN", "50"))

    # ── Telemetry aggregates service ─────────────────────────
    telemetry_base_url: str = os.getenv(
        "TELEMETRY_BASE_URL", "https://aggregates.telemetry.mozilla.org"
    )
    telemetry_channels: str = os.getenv(
        "TELEMETRY_CHANNELS", "nightly,aurora,beta,release"
    )
    telemetry_timeout_seconds: float = float(
        os.getenv("TELEMETRY_TIMEOUT_SECONDS", "30")
    )
    telemetry_dates_per_request: int = int(
        os.getenv("TELEMETRY_DATES_PER_REQUEST", "30")
    )
    telemetry_max_concurrency: int = int(os.getenv("TELEMETRY_MAX_CONCURRENCY", "8"))
    telemetry_max_versions_per_channel: int = int(
        os.getenv("TELEMETRY_MAX_VERSIONS_PER_CHANNEL", "0")
    )
    load_on_startup: bool = _env_bool("ROOTWATCH_LOAD_ON_STARTUP", "1")

    @property
    def telemetry_channels_list(self) -> List[str]:
        return [
            channel.strip()
            for channel in self.telemetry_channels.split(",")
            if channel.strip()
        ]


def get_settings() -> Settings:
    return Settings()


def validate_settings(settings: Settings) -> None:
    if settings.max_label_length < 4:
        raise ValueError("MAX_CA_NAME_LEN must be >= 4")
    if settings.telemetry_timeout_seconds <= 0:
        raise ValueError("TELEMETRY_TIMEOUT_SECONDS must be > 0")
    if settings.telemetry_dates_per_request < 1:
        raise ValueError("TELEMETRY_DATES_PER_REQUEST must be >= 1")
    if settings.telemetry_max_concurrency < 1:
        raise ValueError("TELEMETRY_MAX_CONCURRENCY must be >= 1")
    if settings.telemetry_max_versions_per_channel < 0:
        raise ValueError("TELEMETRY_MAX_VERSIONS_PER_CHANNEL must be >= 0")
    if not settings.telemetry_channels_list:
        raise ValueError("TELEMETRY_CHANNELS must name at least one channel")
