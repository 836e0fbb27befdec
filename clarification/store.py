"""
Pending clarification state, one entry per session.

Entries are overwritten or cleared, never merged. An entry older than the TTL
is treated as absent by get(); sweep() only ever deletes.
"""

import time
from dataclasses import dataclass
from typing import Callable

from models.chat_result import ClarificationDimension
from models.part import ScoredPart
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 600


@dataclass(frozen=True)
class PendingClarification:
    original_query: str
    dimension: ClarificationDimension
    candidates: tuple[ScoredPart, ...]
    created_at: float
    part_name: str = ""
    options: tuple[str, ...] = ()

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at > ttl_seconds


class ClarificationStore:
    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._pending: dict[str, PendingClarification] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def set(
        self,
        session_id: str,
        original_query: str,
        dimension: ClarificationDimension,
        candidates: list[ScoredPart],
        part_name: str = "",
        options: tuple[str, ...] | list[str] = (),
    ) -> PendingClarification:
        entry = PendingClarification(
            original_query=original_query,
            dimension=dimension,
            candidates=tuple(candidates),
            created_at=self._clock(),
            part_name=part_name,
            options=tuple(options),
        )
        self._pending[session_id] = entry
        return entry

    def get(self, session_id: str) -> PendingClarification | None:
        entry = self._pending.get(session_id)
        if entry is None:
            return None
        if entry.is_expired(self._clock(), self.ttl_seconds):
            return None
        return entry

    def clear(self, session_id: str) -> None:
        self._pending.pop(session_id, None)

    def sweep(self) -> int:
        """Delete expired entries; returns how many were dropped."""
        now = self._clock()
        expired = [sid for sid, entry in self._pending.items() if entry.is_expired(now, self.ttl_seconds)]
        for session_id in expired:
            del self._pending[session_id]
        if expired:
            logger.info(
                "Expired clarifications swept",
                extra={"extra_fields": {"removed": len(expired), "remaining": len(self._pending)}},
            )
        return len(expired)
