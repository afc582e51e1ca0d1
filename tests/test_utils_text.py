"""Tests for rootwatch.utils.text — label and fingerprint formatting."""

from __future__ import annotations

from rootwatch.utils.text import format_fingerprint, normalize_label, truncate_label


class TestNormalizeLabel:
    def test_replaces_underscores(self):
        assert normalize_label("GTE_CyberTrust_Global_Root") == "GTE CyberTrust Global Root"

    def test_empty_string(self):
        assert normalize_label("") == ""

    def test_no_separator(self):
        assert normalize_label("Root") == "Root"


class TestTruncateLabel:
    def test_short_text_unchanged(self):
        assert truncate_label("Root One", 50) == "Root One"

    def test_exact_limit_unchanged(self):
        text = "x" * 50
        assert truncate_label(text, 50) == text

    def test_long_text_gets_ellipsis(self):
        result = truncate_label("a" * 60, 50)
        assert result == "a" * 50 + "..."


class TestFormatFingerprint:
    def test_colon_separated_lowercase_hex(self):
        assert format_fingerprint(b"\x00\xab\xff") == "00:ab:ff"

    def test_empty(self):
        assert format_fingerprint(b"") == ""
