"""
Contracts between the parts core and its storage collaborators.

The core builds a CandidatePredicate and hands it to a CatalogStore; the store
executes it. Conversation history is only read for ordering, sender and text.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from models.part import Part


@dataclass(frozen=True)
class CandidatePredicate:
    """
    Store-neutral candidate filter.

    All alternatives are OR-ed and matched case-insensitively:
    - any_terms: substring of designation or reference
    - reference_equals: whole reference equals the value
    - reference_contains: substring of reference
    """

    any_terms: tuple[str, ...] = ()
    reference_equals: tuple[str, ...] = ()
    reference_contains: tuple[str, ...] = ()
    limit: int = 100

    @property
    def is_empty(self) -> bool:
        return not (self.any_terms or self.reference_equals or self.reference_contains)


@dataclass(frozen=True)
class StoredMessage:
    session_id: str
    sender: str  # "user" | "bot"
    text: str
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_user(self) -> bool:
        return self.sender == "user"


@runtime_checkable
class CatalogStore(Protocol):
    async def find_candidates(self, predicate: CandidatePredicate) -> list[Part]:
        ...


@runtime_checkable
class ConversationStore(Protocol):
    async def get_history(self, session_id: str) -> list[StoredMessage]:
        ...

    async def append_message(self, session_id: str, sender: str, text: str) -> None:
        ...
