"""Canonical text form and tokenization shared by every search stage."""

import re
import unicodedata

_NON_CANONICAL = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """
    Reduce text to its canonical search form.

    Steps, in order: case-fold, decompose and drop diacritics, replace anything
    outside [a-z0-9 whitespace -] with a space, collapse whitespace.

    Args:
        text: Raw text (may be None)

    Returns:
        Canonical text, "" for empty input
    """
    if not text:
        return ""
    folded = text.casefold()
    decomposed = unicodedata.normalize("NFD", folded)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _NON_CANONICAL.sub(" ", stripped)
    return _WHITESPACE.sub(" ", cleaned).strip()


def tokenize(normalized: str, preserve_short: bool = False) -> list[str]:
    """
    Split canonical text into tokens.

    Args:
        normalized: Output of normalize_text
        preserve_short: Keep tokens of one or two characters ("av", "g")

    Returns:
        Ordered token list; without preserve_short only tokens longer than 2 chars
    """
    if not normalized or not normalized.strip():
        return []
    parts = [p for p in normalized.split(" ") if p]
    if preserve_short:
        return parts
    return [p for p in parts if len(p) > 2]


def contains_word(haystack: str, needle: str) -> bool:
    """Word-boundary containment on canonical text."""
    if not needle:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(needle)}(?![a-z0-9])", haystack) is not None
