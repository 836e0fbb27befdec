"""
Clarification package: ambiguity detection and per-session pending questions.
"""

from clarification.manager import (
    ClarificationAnswer,
    ClarificationCheck,
    ClarificationManager,
    NOT_NEEDED,
)
from clarification.store import ClarificationStore, PendingClarification
from clarification.sweeper import ClarificationSweeper

__all__ = [
    "ClarificationAnswer",
    "ClarificationCheck",
    "ClarificationManager",
    "ClarificationStore",
    "ClarificationSweeper",
    "NOT_NEEDED",
    "PendingClarification",
]
