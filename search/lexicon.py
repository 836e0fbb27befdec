from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from search.normalizer import contains_word, normalize_text

DEFAULT_LEXICON_PATH = Path(__file__).resolve().parent.parent / "config" / "lexicon.yaml"


@dataclass(frozen=True)
class CompoundPartName:
    name: str
    required: tuple[str, ...]


@dataclass(frozen=True)
class Lexicon:
    """Immutable vocabulary tables loaded once from lexicon.yaml."""

    synonyms: Mapping[str, tuple[str, ...]]
    type_weights: Mapping[str, float]
    accessory_words: tuple[str, ...]
    bilateral_parts: tuple[str, ...]
    compound_part_names: tuple[CompoundPartName, ...]
    single_part_names: tuple[str, ...]
    topics: Mapping[str, tuple[str, ...]]
    default_topic: str
    generic_menu: tuple[str, ...]
    type_variants: Mapping[str, tuple[str, ...]]
    vehicle_models: tuple[str, ...]

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "Lexicon":
        lexicon_path = Path(path) if path else DEFAULT_LEXICON_PATH
        if not lexicon_path.exists():
            raise ValueError(f"Lexicon not found at {lexicon_path}")

        data = yaml.safe_load(lexicon_path.read_text(encoding="utf-8"))
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Lexicon":
        if not data:
            raise ValueError("Invalid lexicon: empty document")
        required = ["synonyms", "type_weights", "accessory_words", "bilateral_parts", "part_names", "topics"]
        missing = [key for key in required if key not in data]
        if missing:
            raise ValueError(f"Invalid lexicon: missing {', '.join(missing)}")

        synonyms: dict[str, tuple[str, ...]] = {}
        for category, members in data["synonyms"].items():
            if not isinstance(members, list):
                raise ValueError(f"Invalid synonym list for category {category}")
            synonyms[str(category)] = tuple(str(m).strip() for m in members if str(m).strip())

        part_names = data["part_names"]
        compounds = tuple(
            CompoundPartName(
                name=str(entry["name"]),
                required=tuple(normalize_text(word) for word in entry["all"]),
            )
            for entry in part_names.get("compound", [])
        )

        return cls(
            synonyms=MappingProxyType(synonyms),
            type_weights=MappingProxyType({str(k): float(v) for k, v in data["type_weights"].items()}),
            accessory_words=tuple(normalize_text(w) for w in data["accessory_words"]),
            bilateral_parts=tuple(normalize_text(w) for w in data["bilateral_parts"]),
            compound_part_names=compounds,
            single_part_names=tuple(normalize_text(w) for w in part_names.get("single", [])),
            topics=MappingProxyType(
                {str(topic): tuple(normalize_text(k) for k in keywords) for topic, keywords in data["topics"].items()}
            ),
            default_topic=str(data.get("default_topic", "général")),
            generic_menu=tuple(str(item) for item in data.get("generic_menu", [])),
            type_variants=MappingProxyType(
                {
                    str(label): tuple(normalize_text(w) for w in words)
                    for label, words in (data.get("type_variants") or {}).items()
                }
            ),
            vehicle_models=tuple(str(m).upper() for m in data.get("vehicle_models", [])),
        )

    def extract_part_name(self, text: str, default: str = "") -> str:
        """
        Name the part a message talks about.

        Compound names win over single ones ("plaquettes frein" over "frein").

        Args:
            text: Raw or canonical message text
            default: Returned when no known part is mentioned

        Returns:
            Canonical part name or default
        """
        normalized = normalize_text(text)
        if not normalized:
            return default
        for compound in self.compound_part_names:
            if all(word in normalized for word in compound.required):
                return compound.name
        for name in self.single_part_names:
            if name in normalized:
                return name
        return default

    def is_bilateral(self, normalized_designation: str) -> bool:
        return any(part in normalized_designation for part in self.bilateral_parts)

    def is_accessory(self, normalized_designation: str, normalized_query: str = "") -> bool:
        """True when the designation carries an accessory word the query did not ask for."""
        for word in self.accessory_words:
            if contains_word(normalized_designation, word) and not contains_word(normalized_query, word):
                return True
        return False


@lru_cache(maxsize=4)
def load_lexicon(path: str | None = None) -> Lexicon:
    """Load and memoize the lexicon; the default file is parsed once per process."""
    return Lexicon.from_yaml(path)
