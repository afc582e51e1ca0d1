"""Shared text-formatting utilities.

Label normalisation and truncation for certificate-authority names, and
fingerprint rendering for the detail view.
"""

from __future__ import annotations

ELLIPSIS = "..."


def normalize_label(value: str) -> str:
    """Replace word-separator underscores with spaces."""
    if not value:
        return ""
    return str(value).replace("_", " ")


def truncate_label(text: str, limit: int = 50) -> str:
    """Cut *text* to *limit* characters and append an ellipsis marker.

    Text at or under the limit is returned unchanged.
    """
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def format_fingerprint(value: bytes) -> str:
    """Render raw fingerprint bytes as ``aa:bb:cc`` lowercase hex."""
    return ":".join(f"{byte:02x}" for byte in bytes(value or b""))
