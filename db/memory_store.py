"""
In-process catalog and conversation stores.

Used by the test-suite and for local runs without a database.
"""

from collections import defaultdict
from datetime import datetime

from db.contracts import CandidatePredicate, StoredMessage
from models.part import Part


class InMemoryCatalogStore:
    """Catalog held in a list; predicate semantics match the SQL adapter."""

    def __init__(self, parts: list[Part] | None = None):
        self._parts: list[Part] = list(parts or [])
        self.calls: list[CandidatePredicate] = []

    async def find_candidates(self, predicate: CandidatePredicate) -> list[Part]:
        self.calls.append(predicate)
        if predicate.is_empty:
            return []
        matches = [part for part in self._parts if _matches(part, predicate)]
        return matches[: predicate.limit]


def _matches(part: Part, predicate: CandidatePredicate) -> bool:
    designation = part.designation.lower()
    reference = part.reference.lower()
    for term in predicate.any_terms:
        needle = term.lower()
        if needle in designation or needle in reference:
            return True
    for value in predicate.reference_equals:
        if reference == value.lower():
            return True
    for value in predicate.reference_contains:
        if value.lower() in reference:
            return True
    return False


class InMemoryConversationStore:
    def __init__(self):
        self._messages: dict[str, list[StoredMessage]] = defaultdict(list)

    async def get_history(self, session_id: str) -> list[StoredMessage]:
        return list(self._messages.get(session_id, []))

    async def append_message(self, session_id: str, sender: str, text: str) -> None:
        self._messages[session_id].append(
            StoredMessage(session_id=session_id, sender=sender, text=text, timestamp=datetime.utcnow())
        )
