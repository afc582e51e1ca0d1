"""Entity registry: index → (label, fingerprint).

The registry is read once, before aggregation begins, from the
``KnownRootHashes.json`` document (``{"roots": [...], "maxBin": N}``).
Anything missing or malformed raises :class:`RegistryError`; the core
cannot construct entities without it.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Union

from pydantic import ValidationError

from .model import EntityNotFoundError, RegistryError
from .schemas import RootHashesDocument
from .utils.text import normalize_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    label: str
    fingerprint: bytes


class Registry:
    def __init__(self, entries: List[RegistryEntry], bound: int) -> None:
        if bound < 0:
            raise RegistryError("registry bound must be >= 0")
        if bound > len(entries):
            raise RegistryError(
                f"registry declares {bound} bins but lists only {len(entries)} roots"
            )
        self._entries = list(entries)
        self.bound = bound

    def __len__(self) -> int:
        return self.bound

    def contains(self, index: int) -> bool:
        return 0 <= index < self.bound

    def lookup(self, index: int) -> RegistryEntry:
        if not self.contains(index):
            raise EntityNotFoundError(
                f"entity index {index} outside registry bound {self.bound}"
            )
        return self._entries[index]


def _decode_fingerprint(value: str, label: str) -> bytes:
    text = str(value or "").strip()
    if not text:
        return b""
    if ":" in text:
        try:
            return bytes.fromhex(text.replace(":", ""))
        except ValueError:
            raise RegistryError(f"bad hex fingerprint for {label!r}") from None
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise RegistryError(f"bad base64 fingerprint for {label!r}") from None


def parse_registry(payload: Any) -> Registry:
    try:
        doc = RootHashesDocument.model_validate(payload)
    except ValidationError as exc:
        raise RegistryError(f"malformed registry document: {exc}") from exc
    entries = [
        RegistryEntry(
            label=normalize_label(root.label),
            fingerprint=_decode_fingerprint(root.sha256_fingerprint, root.label),
        )
        for root in doc.roots
    ]
    registry = Registry(entries, doc.max_bin)
    logger.info("Loaded registry: %d roots, bound=%d", len(entries), registry.bound)
    return registry


def load_registry(path: Union[str, Path]) -> Registry:
    registry_path = Path(path).expanduser()
    try:
        payload = json.loads(registry_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise RegistryError(f"registry file not found: {registry_path}") from None
    except json.JSONDecodeError as exc:
        raise RegistryError(f"registry file is not JSON: {registry_path}") from exc
    return parse_registry(payload)
