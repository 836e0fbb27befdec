"""
Relevance scoring for catalog candidates.

score = reference + content + position + business. Every component may be
negative and the total is not floored; only relative order matters before
thresholding.
"""

from models.part import Part, ScoredPart
from models.search_context import SearchContext
from search.lexicon import Lexicon
from search.normalizer import contains_word, normalize_text
from search.query_classifier import compact_reference, designation_markers
from search.synonyms import SynonymIndex, search_form
from search.vehicle import matches_model
from search.weights import DEFAULT_WEIGHTS, ScoringWeights


class PartScorer:
    def __init__(
        self,
        lexicon: Lexicon,
        synonyms: SynonymIndex,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        self.lexicon = lexicon
        self.synonyms = synonyms
        self.weights = weights

    def score(self, part: Part, context: SearchContext) -> int:
        designation = normalize_text(part.designation)
        return (
            self.reference_score(part, context)
            + self.content_score(part, designation, context)
            + self.position_score(designation, context)
            + self.business_score(part, context)
        )

    def score_all(self, parts: list[Part], context: SearchContext) -> list[ScoredPart]:
        """Score and sort by (score desc, stock desc, reference, designation)."""
        scored = [ScoredPart(part=p, score=self.score(p, context)) for p in parts]
        return sorted(scored, key=ScoredPart.sort_key)

    def reference_score(self, part: Part, context: SearchContext) -> int:
        relation = _reference_relation(part.reference, context.normalized_query)
        if relation == "equals":
            return self.weights.reference_exact
        if relation == "contains":
            return self.weights.reference_contains
        return 0

    def content_score(self, part: Part, designation: str, context: SearchContext) -> int:
        w = self.weights
        score = 0

        for token in context.raw_tokens:
            if len(token) >= 3 and contains_word(designation, token):
                score += w.token_match

        main_type = context.main_part_type
        if main_type:
            variants = self.type_variants(main_type)
            if any(v in designation for v in variants):
                score += w.type_present
                score += self._exactness_tier(designation, variants, context.normalized_query)
            else:
                score += w.type_absent

        relation = _reference_relation(part.reference, context.normalized_query)
        if relation == "equals":
            score += w.query_equals_reference
        elif relation == "contains":
            score += w.query_in_reference

        reference = part.reference.lower()
        if context.raw_tokens and all(t in designation or t in reference for t in context.raw_tokens):
            score += w.all_tokens_present

        for type_name, weight in self.lexicon.type_weights.items():
            if type_name in designation:
                base = w.main_type_base if type_name == main_type else w.cooccurring_type_base
                score += round(base * weight)

        return score

    def position_score(self, designation: str, context: SearchContext) -> int:
        required = context.positions
        if not required.any:
            return 0
        w = self.weights
        markers = designation_markers(designation)
        score = 0

        for wanted, present, opposite in (
            (required.front, markers.front, markers.rear),
            (required.rear, markers.rear, markers.front),
            (required.left, markers.left, markers.right),
            (required.right, markers.right, markers.left),
        ):
            if not wanted:
                continue
            if present:
                score += w.position_match
            elif opposite:
                score += w.position_conflict
        return score

    def business_score(self, part: Part, context: SearchContext) -> int:
        score = 0
        if part.in_stock:
            score += self.weights.in_stock
        if context.requested_model and matches_model(part.designation, context.requested_model):
            score += self.weights.model_match
        return score

    def type_variants(self, main_type: str) -> tuple[str, ...]:
        """Surface forms of a part type, category key first, longest variants next."""
        key = search_form(main_type)
        others = sorted((v for v in self.synonyms.variants(main_type) if v != key), key=len, reverse=True)
        return (key, *others)

    def _exactness_tier(self, designation: str, variants: tuple[str, ...], normalized_query: str) -> int:
        w = self.weights
        if any(designation == v for v in variants):
            return w.type_exact
        if self.lexicon.is_accessory(designation, normalized_query):
            return w.accessory
        if any(designation.startswith(v + " ") or designation.startswith(v + "-") for v in variants):
            return w.type_prefix
        if any(contains_word(designation, v) for v in variants):
            return w.type_word
        return 0


def _reference_relation(reference: str, normalized_query: str) -> str | None:
    """'equals', 'contains' or None, comparing canonical and alphanumeric-only forms."""
    if not normalized_query or not reference:
        return None
    ref = normalize_text(reference)
    ref_compact = compact_reference(reference)
    query_compact = compact_reference(normalized_query)
    if ref == normalized_query or (query_compact and ref_compact == query_compact):
        return "equals"
    if normalized_query in ref or (len(query_compact) >= 3 and query_compact in ref_compact):
        return "contains"
    return None
