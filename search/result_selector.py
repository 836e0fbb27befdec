"""Thresholding and capping of a scored candidate list."""

from models.part import ScoredPart
from models.search_context import SearchContext
from search.query_classifier import is_position_only_query
from search.weights import DEFAULT_POLICY, SelectionPolicy


def minimum_score(context: SearchContext, policy: SelectionPolicy = DEFAULT_POLICY) -> int:
    if is_position_only_query(context.position_tokens):
        return policy.min_score_position_only
    if context.dialect_detected:
        return policy.min_score_dialect
    return policy.min_score_default


def result_cap(context: SearchContext, survivors: int, policy: SelectionPolicy = DEFAULT_POLICY) -> int:
    if context.positions.any and survivors >= policy.cap_with_position:
        return policy.cap_with_position
    if survivors >= policy.cap_default:
        return policy.cap_default
    return min(survivors, policy.cap_max)


def select_results(
    scored: list[ScoredPart],
    context: SearchContext,
    policy: SelectionPolicy = DEFAULT_POLICY,
) -> list[ScoredPart]:
    """
    Keep candidates at or above the minimum score, sorted and capped.

    Args:
        scored: Scored candidates in any order
        context: Query context the scores were computed for
        policy: Threshold and cap values

    Returns:
        Survivors sorted by (score desc, stock desc, reference), capped
    """
    threshold = minimum_score(context, policy)
    survivors = sorted((s for s in scored if s.score >= threshold), key=ScoredPart.sort_key)
    return survivors[: result_cap(context, len(survivors), policy)]
