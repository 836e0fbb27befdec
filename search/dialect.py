"""Static dialect/slang dictionary used when the AI normalizer is unavailable."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

DEFAULT_DIALECT_PATH = Path(__file__).resolve().parent.parent / "config" / "dialect.yaml"


@dataclass(frozen=True)
class DialectDictionary:
    phrases: Mapping[str, str]
    greetings: tuple[str, ...]
    thanks: tuple[str, ...]
    _pattern: re.Pattern | None = None

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "DialectDictionary":
        dialect_path = Path(path) if path else DEFAULT_DIALECT_PATH
        if not dialect_path.exists():
            raise ValueError(f"Dialect dictionary not found at {dialect_path}")
        data = yaml.safe_load(dialect_path.read_text(encoding="utf-8"))
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "DialectDictionary":
        if not data or "phrases" not in data:
            raise ValueError("Invalid dialect dictionary: missing phrases")

        # identity entries would flag every standard query as dialect
        phrases = {
            str(k).lower().strip(): str(v).strip()
            for k, v in data["phrases"].items()
            if str(k).lower().strip() != str(v).lower().strip()
        }
        pattern = None
        if phrases:
            alternation = "|".join(re.escape(k) for k in sorted(phrases, key=len, reverse=True))
            pattern = re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)

        return cls(
            phrases=MappingProxyType(phrases),
            greetings=tuple(str(g).lower() for g in data.get("greetings", [])),
            thanks=tuple(str(t).lower() for t in data.get("thanks", [])),
            _pattern=pattern,
        )

    def apply(self, text: str) -> str | None:
        """
        Rewrite whole-word dialect matches to standard French.

        Args:
            text: Raw user text

        Returns:
            Lower-cased rewritten text, or None when no dialect word was found
        """
        if not text or self._pattern is None:
            return None
        lowered = text.lower()
        rewritten, count = self._pattern.subn(lambda m: self.phrases[m.group(0).lower()], lowered)
        if count == 0:
            return None
        return rewritten

    def starts_with_greeting(self, text: str) -> bool:
        return _starts_with_any(text, self.greetings)

    def starts_with_thanks(self, text: str) -> bool:
        return _starts_with_any(text, self.thanks)


def _starts_with_any(text: str, words: tuple[str, ...]) -> bool:
    lowered = (text or "").lower().strip()
    return any(re.match(rf"{re.escape(w)}(?!\w)", lowered) for w in words)


@lru_cache(maxsize=4)
def load_dialect(path: str | None = None) -> DialectDictionary:
    return DialectDictionary.from_yaml(path)
