"""Candidate predicates handed to the catalog store."""

from db.contracts import CandidatePredicate
from search.query_classifier import compact_reference

MIN_TERM_LENGTH = 2


def build_candidate_predicate(
    search_terms: tuple[str, ...] | list[str],
    max_terms: int = 10,
    limit: int = 100,
) -> CandidatePredicate:
    """
    Loose OR filter over designation/reference for a free-text query.

    Args:
        search_terms: Raw tokens followed by expansions, deduplicated
        max_terms: Only the first terms are sent to the store
        limit: Maximum candidates returned by the store

    Returns:
        CandidatePredicate (empty when no usable term remains)
    """
    terms = [t for t in search_terms[:max_terms] if len(t) >= MIN_TERM_LENGTH]
    return CandidatePredicate(any_terms=tuple(terms), limit=limit)


def build_exact_reference_predicate(reference: str, limit: int = 5) -> CandidatePredicate:
    raw = reference.strip()
    compact = compact_reference(raw)
    values = (raw,) if compact.lower() == raw.lower() else (raw, compact)
    return CandidatePredicate(reference_equals=values, limit=limit)


def build_partial_reference_predicate(reference: str, limit: int = 10) -> CandidatePredicate:
    return CandidatePredicate(reference_contains=(reference.strip(),), limit=limit)
