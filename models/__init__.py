"""
Models package for catalog parts, search state and turn results.
"""

from .chat_result import ChatResult, ClarificationDimension, ClarificationQuestion, Intent
from .part import Part, ScoredPart, filter_available
from .search_context import PositionRequirements, SearchContext

__all__ = [
    "ChatResult",
    "ClarificationDimension",
    "ClarificationQuestion",
    "Intent",
    "Part",
    "PositionRequirements",
    "ScoredPart",
    "SearchContext",
    "filter_available",
]
