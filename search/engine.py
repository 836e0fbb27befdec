"""
Search pipeline: classify -> retrieve -> score -> select.

The catalog store is awaited exactly once per search call; store errors are
not caught here.
"""

from dataclasses import dataclass, field

from db.contracts import CatalogStore
from models.part import ScoredPart
from models.search_context import SearchContext
from search.lexicon import Lexicon
from search.normalizer import normalize_text, tokenize
from search.predicate import (
    build_candidate_predicate,
    build_exact_reference_predicate,
    build_partial_reference_predicate,
)
from search.query_classifier import detect_positions, detect_reference
from search.result_selector import minimum_score, result_cap, select_results
from search.scorer import PartScorer
from search.synonyms import SynonymIndex
from search.vehicle import find_model
from search.weights import DEFAULT_POLICY, SelectionPolicy
from utils.logger import get_logger

logger = get_logger(__name__)

MIN_QUERY_LENGTH = 2


@dataclass(frozen=True)
class SearchOutcome:
    results: list[ScoredPart] = field(default_factory=list)
    context: SearchContext | None = None
    reference: str | None = None
    candidate_count: int = 0

    @property
    def reference_attempted(self) -> bool:
        return self.reference is not None


class SearchEngine:
    def __init__(
        self,
        catalog: CatalogStore,
        lexicon: Lexicon,
        synonyms: SynonymIndex | None = None,
        scorer: PartScorer | None = None,
        policy: SelectionPolicy = DEFAULT_POLICY,
        candidate_limit: int = 100,
        max_terms: int = 10,
        reference_exact_limit: int = 5,
        reference_partial_limit: int = 10,
    ):
        self.catalog = catalog
        self.lexicon = lexicon
        self.synonyms = synonyms if synonyms is not None else SynonymIndex(lexicon.synonyms)
        self.scorer = scorer or PartScorer(lexicon, self.synonyms)
        self.policy = policy
        self.candidate_limit = candidate_limit
        self.max_terms = max_terms
        self.reference_exact_limit = reference_exact_limit
        self.reference_partial_limit = reference_partial_limit

    async def search(
        self,
        query: str,
        dialect_detected: bool = False,
        raw_query: str | None = None,
        requested_model: str | None = None,
    ) -> SearchOutcome:
        """
        Run one search.

        Args:
            query: Text to search for (already dialect-normalized if applicable)
            dialect_detected: Relaxes the minimum score
            raw_query: Text as typed; reference detection runs on it when given
            requested_model: Vehicle model to reward in designations

        Returns:
            SearchOutcome; a detected reference always short-circuits, even with no hit
        """
        text = (query or "").strip()
        if len(text) < MIN_QUERY_LENGTH:
            logger.debug("Query too short, skipping search", extra={"extra_fields": {"query": text}})
            return SearchOutcome()

        logger.info("Search started", extra={"extra_fields": {"query": text, "dialect": dialect_detected}})

        reference = detect_reference(raw_query or text)
        if reference:
            return await self.search_reference(reference)

        context = self.build_context(text, dialect_detected, requested_model)
        predicate = build_candidate_predicate(context.search_terms, self.max_terms, self.candidate_limit)
        if predicate.is_empty:
            return SearchOutcome(context=context)

        candidates = await self.catalog.find_candidates(predicate)
        scored = self.scorer.score_all(candidates, context)
        results = select_results(scored, context, self.policy)

        logger.info(
            "Search finished",
            extra={
                "extra_fields": {
                    "candidates": len(candidates),
                    "survivors": len(results),
                    "min_score": minimum_score(context, self.policy),
                    "cap": result_cap(context, len(results), self.policy),
                }
            },
        )
        return SearchOutcome(results=results, context=context, candidate_count=len(candidates))

    async def search_reference(self, reference: str) -> SearchOutcome:
        """Exact reference lookup, falling back to a substring lookup."""
        context = self.build_context(reference, False, None)
        parts = await self.catalog.find_candidates(
            build_exact_reference_predicate(reference, self.reference_exact_limit)
        )
        if not parts:
            parts = await self.catalog.find_candidates(
                build_partial_reference_predicate(reference, self.reference_partial_limit)
            )

        results = self.scorer.score_all(parts, context)
        logger.info(
            "Reference search finished",
            extra={"extra_fields": {"reference": reference, "results": len(results)}},
        )
        return SearchOutcome(results=results, context=context, reference=reference, candidate_count=len(parts))

    def build_context(
        self,
        query: str,
        dialect_detected: bool = False,
        requested_model: str | None = None,
    ) -> SearchContext:
        normalized = normalize_text(query)
        raw_tokens = tokenize(normalized)
        position_tokens = tokenize(normalized, preserve_short=True)
        search_terms = self.synonyms.expand(raw_tokens)
        positions = detect_positions(position_tokens)

        context = SearchContext(
            raw_tokens=tuple(raw_tokens),
            position_tokens=tuple(position_tokens),
            expanded_terms=frozenset(search_terms),
            search_terms=tuple(search_terms),
            positions=positions,
            main_part_type=self.detect_main_part_type(raw_tokens),
            original_query=query,
            normalized_query=normalized,
            dialect_detected=dialect_detected,
            requested_model=requested_model or find_model(query, self.lexicon.vehicle_models),
        )
        logger.debug(
            "Search context built",
            extra={
                "extra_fields": {
                    "normalized": normalized,
                    "tokens": raw_tokens,
                    "expanded": search_terms,
                    "positions": [
                        name
                        for name, flag in (
                            ("front", positions.front),
                            ("rear", positions.rear),
                            ("left", positions.left),
                            ("right", positions.right),
                        )
                        if flag
                    ],
                    "main_part_type": context.main_part_type,
                }
            },
        )
        return context

    def detect_main_part_type(self, raw_tokens: list[str]) -> str | None:
        """First token that is (or belongs to) a weighted part type."""
        weights = self.lexicon.type_weights
        for token in raw_tokens:
            if token in weights:
                return token
            category = self.synonyms.category_of(token)
            if category in weights:
                return category
        return None
