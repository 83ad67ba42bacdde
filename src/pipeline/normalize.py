"""Normalization utilities for Brazilian license plate text."""

from __future__ import annotations

import re

IGNORED_WORDS = ("BRASIL", "BR", "MERCOSUL")
PLATE_LENGTH = 7

NEW_FORMAT_RE = re.compile(r"[A-Z]{3}[0-9][A-Z][0-9]{2}")
OLD_FORMAT_RE = re.compile(r"[A-Z]{3}[0-9]{4}")
INVALID_CHARS_RE = re.compile(r"[^A-Z0-9]")

_IGNORED_RES = tuple(re.compile(re.escape(word), re.IGNORECASE) for word in IGNORED_WORDS)


def _strip_ignored_words(text: str) -> str:
    for pattern in _IGNORED_RES:
        text = pattern.sub("", text)
    return text


def plate_format(text: str) -> str | None:
    """Return "new" (Mercosul), "old" or None for a 7-character code."""
    if NEW_FORMAT_RE.fullmatch(text):
        return "new"
    if OLD_FORMAT_RE.fullmatch(text):
        return "old"
    return None


def is_valid_plate(text: str) -> bool:
    return plate_format(text) is not None


def normalize_plate_text(text: str | None) -> str:
    """Normalize OCR text into a plate code.

    Lowercase letters are dropped together with other invalid characters,
    since the whitelist only yields uppercase output. When the first 7
    characters match neither format, the whole cleaned string is returned.
    """
    if not text:
        return ""

    cleaned = _strip_ignored_words(text.strip())
    cleaned = INVALID_CHARS_RE.sub("", cleaned).upper()

    if len(cleaned) >= PLATE_LENGTH:
        prefix = cleaned[:PLATE_LENGTH]
        if is_valid_plate(prefix):
            return prefix
    return cleaned
