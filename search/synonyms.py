from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from search.normalizer import normalize_text


def search_form(category: str) -> str:
    """Searchable text of a category key ("maitre_cylindre" -> "maitre cylindre")."""
    return normalize_text(category.replace("_", " "))


class SynonymIndex:
    """
    Reverse index from every normalized synonym member to its category key.

    Built once from the lexicon and never mutated afterwards. When a member is
    listed under several categories the first category wins.
    """

    def __init__(self, synonyms: Mapping[str, Iterable[str]]):
        reverse: dict[str, str] = {}
        variants: dict[str, tuple[str, ...]] = {}
        for category, members in synonyms.items():
            normalized_members: list[str] = []
            for member in members:
                form = normalize_text(member)
                if not form or form in normalized_members:
                    continue
                normalized_members.append(form)
                reverse.setdefault(form, category)
            key_form = search_form(category)
            reverse.setdefault(key_form, category)
            variants[category] = tuple(normalized_members)
        self._reverse = MappingProxyType(reverse)
        self._variants = MappingProxyType(variants)

    def __len__(self) -> int:
        return len(self._reverse)

    def __contains__(self, token: object) -> bool:
        return token in self._reverse

    def category_of(self, token: str) -> str | None:
        return self._reverse.get(token)

    def variants(self, category: str) -> tuple[str, ...]:
        return self._variants.get(category, ())

    def expand(self, tokens: Iterable[str]) -> list[str]:
        """
        Enrich tokens with synonym categories.

        Each token is kept; a known token adds its category key and at most
        one further variant from the same category.

        Args:
            tokens: Normalized tokens, in query order

        Returns:
            Deduplicated terms in insertion order
        """
        terms: list[str] = []
        seen: set[str] = set()

        def add(term: str) -> None:
            if term and term not in seen:
                seen.add(term)
                terms.append(term)

        for token in tokens:
            add(token)
            category = self._reverse.get(token)
            if category is None:
                continue
            key_form = search_form(category)
            add(key_form)
            for variant in self._variants.get(category, ()):
                if variant not in (token, key_form):
                    add(variant)
                    break
        return terms
