"""
Search package: text normalization, classification, scoring and selection.
"""

from search.dialect import DialectDictionary, load_dialect
from search.engine import SearchEngine, SearchOutcome
from search.lexicon import Lexicon, load_lexicon
from search.normalizer import contains_word, normalize_text, tokenize
from search.query_normalizer import (
    AIQueryNormalizer,
    DialectQueryNormalizer,
    FallbackQueryNormalizer,
    NormalizationResult,
    QueryNormalizer,
    create_query_normalizer,
)
from search.scorer import PartScorer
from search.synonyms import SynonymIndex
from search.weights import ScoringWeights, SelectionPolicy

__all__ = [
    "AIQueryNormalizer",
    "DialectDictionary",
    "DialectQueryNormalizer",
    "FallbackQueryNormalizer",
    "Lexicon",
    "NormalizationResult",
    "PartScorer",
    "QueryNormalizer",
    "ScoringWeights",
    "SearchEngine",
    "SearchOutcome",
    "SelectionPolicy",
    "SynonymIndex",
    "contains_word",
    "create_query_normalizer",
    "load_dialect",
    "load_lexicon",
    "normalize_text",
    "tokenize",
]
