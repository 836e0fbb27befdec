"""
ContextTracker - per-session topic memory for follow-up queries.

The session context is recomputed from the full conversation history on a
cache miss and served from a short TTL cache otherwise. The only incremental
change allowed is an explicit set_last_part() call.
"""

import re
import time
from dataclasses import dataclass, replace
from typing import Callable

from context.cache import InMemoryTTLCache
from db.contracts import ConversationStore
from search.dialect import DialectDictionary
from search.lexicon import Lexicon
from search.normalizer import normalize_text, tokenize
from search.query_classifier import QUALIFIER_WORDS, detect_positions, is_qualifier_only
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONTEXT_TTL_SECONDS = 300

_FOLLOW_UP_SAME_PART = re.compile(
    r"\b(behi|ok|yezzi|montre|montre-moi|regarde|voir|chouf|choufli|wri|daccord|bien)\b"
)
_NEW_PART_REQUEST = re.compile(
    r"\b(je veux|n7eb|bghit|nchri)\b|\bmaintenant\b.*\b(aile|porte|capot|phare)\b"
)
_FOLLOW_UP = re.compile(r"\b(et pour|aussi|egalement|pareil|meme chose|pour le|pour la)\b")
_HOW_MUCH_FOR = re.compile(r"\b(combien pour|prix pour|deux jeux|les deux)\b")
_SIDE_WORDS = frozenset({"gauche", "g", "conducteur", "gosh", "droite", "droit", "d", "passager"})


@dataclass(frozen=True)
class SessionContext:
    topic_flow: tuple[str, ...] = ()
    last_topic: str | None = None
    last_part: str | None = None
    last_side: str | None = None
    message_count: int = 0


class ContextTracker:
    def __init__(
        self,
        conversations: ConversationStore,
        lexicon: Lexicon,
        dialect: DialectDictionary | None = None,
        ttl_seconds: float = DEFAULT_CONTEXT_TTL_SECONDS,
        default_vehicle_model: str = "S-PRESSO",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.conversations = conversations
        self.lexicon = lexicon
        self.dialect = dialect
        self.default_vehicle_model = default_vehicle_model
        self._cache = InMemoryTTLCache(ttl_seconds, clock=clock)
        # explicit last-part overrides expire like the contexts they patch
        self._last_parts = InMemoryTTLCache(ttl_seconds, clock=clock)

    async def get(self, session_id: str) -> SessionContext:
        cached = self._cache.get(session_id)
        if cached is not None:
            return cached

        messages = await self.conversations.get_history(session_id)
        user_texts = [m.text for m in messages if m.is_user]
        topic_flow = tuple(self.extract_topic(text) for text in user_texts)

        last_topic = last_part = last_side = None
        for text, topic in zip(reversed(user_texts), reversed(topic_flow)):
            if topic != self.lexicon.default_topic:
                last_topic = topic
                last_part = self.lexicon.extract_part_name(text) or None
                last_side = self.extract_side(text)
                break

        context = SessionContext(
            topic_flow=topic_flow,
            last_topic=last_topic,
            last_part=last_part or self._last_parts.get(session_id),
            last_side=last_side,
            message_count=len(messages),
        )
        self._cache.set(session_id, context)
        logger.debug(
            "Session context computed",
            extra={
                "extra_fields": {
                    "session_id": session_id,
                    "last_topic": last_topic,
                    "last_part": context.last_part,
                    "messages": len(messages),
                }
            },
        )
        return context

    def set_last_part(self, session_id: str, part_name: str) -> None:
        if not part_name:
            return
        self._last_parts.set(session_id, part_name)
        cached = self._cache.get(session_id)
        if cached is not None:
            self._cache.replace(session_id, replace(cached, last_part=part_name))

    def invalidate(self, session_id: str) -> None:
        self._cache.delete(session_id)

    def sweep(self) -> int:
        """Drop expired contexts and overrides of abandoned sessions."""
        dropped = self._cache.sweep()
        self._last_parts.sweep()
        if dropped:
            logger.info("Session contexts swept", extra={"extra_fields": {"dropped": dropped}})
        return dropped

    # ---------- message analysis ----------

    def extract_topic(self, message: str) -> str:
        """
        Topic label of one user message.

        The dialect rewrite is tried first, then the raw text.
        """
        texts = []
        if self.dialect is not None:
            rewritten = self.dialect.apply(message)
            if rewritten:
                texts.append(normalize_text(rewritten))
        texts.append(normalize_text(message))

        for text in texts:
            topic = self._topic_for(text)
            if topic != self.lexicon.default_topic:
                return topic
        return self.lexicon.default_topic

    def _topic_for(self, text: str) -> str:
        if "amortisseur" in text:
            return "suspension"
        # brake pads always win over the generic brake topic
        if "plaquette" in text or "plakete" in text:
            return "plaquettes frein"
        for topic, keywords in self.lexicon.topics.items():
            if any(k in text for k in keywords):
                return topic
        return self.lexicon.default_topic

    def extract_side(self, message: str) -> str | None:
        stated = detect_positions(tokenize(normalize_text(message), preserve_short=True))
        if stated.left:
            return "gauche"
        if stated.right:
            return "droite"
        return None

    # ---------- query building ----------

    def build_search_query(self, message: str, context: SessionContext, vehicle_model: str | None = None) -> str:
        """
        Fold session context into a follow-up message.

        Args:
            message: Current (normalized) user message
            context: Session context for this turn
            vehicle_model: Active vehicle model, if known

        Returns:
            A complete searchable string; the message itself when no
            context applies
        """
        text = message.strip()
        normalized = re.sub(r"\bd accord\b", "daccord", normalize_text(text))
        tokens = tokenize(normalized, preserve_short=True)
        qualifiers = [t for t in tokens if t in QUALIFIER_WORDS]

        has_part = bool(self.lexicon.extract_part_name(normalized))
        has_position = bool(qualifiers)

        if has_part and has_position:
            return text

        if context.last_part and is_qualifier_only(tokens) and len(tokens) <= 2:
            return self._log_built(text, f"{context.last_part} {text}", "position_only")

        if context.last_part and not has_part and has_position and _FOLLOW_UP_SAME_PART.search(normalized):
            return self._log_built(text, f"{context.last_part} {' '.join(qualifiers)}", "same_part")

        if has_part and _NEW_PART_REQUEST.search(normalized):
            return text

        if context.last_part and _FOLLOW_UP.search(normalized):
            if qualifiers:
                position = qualifiers[0]
                side = "" if position in _SIDE_WORDS else (context.last_side or "")
                return self._log_built(text, f"{context.last_part} {position} {side}".strip(), "follow_up")
            return self._log_built(text, context.last_part, "follow_up")

        if context.last_topic and _HOW_MUCH_FOR.search(normalized):
            model = vehicle_model or self.default_vehicle_model
            topic = "plaquettes frein" if "frein" in context.last_topic else context.last_topic
            return self._log_built(text, f"{topic} {model}", "how_much_for")

        return text

    def _log_built(self, message: str, query: str, rule: str) -> str:
        logger.info(
            "Context injected into query",
            extra={"extra_fields": {"message": message, "query": query, "rule": rule}},
        )
        return query
