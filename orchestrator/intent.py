"""
Conversational intent detection ahead of the parts search.

Patterns run on accent-stripped text, so "défectueux" and "defectueux" are
the same word here.
"""

import re
from dataclasses import dataclass, field

from models.chat_result import Intent
from search.normalizer import normalize_text

_GREETING_START = re.compile(r"^(bonjour|bonsoir|salut|hello|hi|hey|salam|salem|assalam|ahla)\b")
_HELP_REQUEST = re.compile(r"\b(aide|help|assistance|aurais besoin)\b")
_SEARCH_WORDS = re.compile(
    r"filtre|plaquette|disque|frein|amortisseur|batterie|pneu|phare|courroie|bougie|capteur|"
    r"radiateur|pompe|nchri|acheter|cherche|besoin|n7eb|stock|prix|disponible|famma|choufli|"
    r"piece|\d{3,}"
)
_THANKS = re.compile(
    r"^merci\b|^thanks?\b|barcha merci|merci beaucoup|thank you|merci pour|je vous remercie|avec plaisir"
)
_COMPLAINT = re.compile(
    r"pas content|pas satisfait|insatisfait|defectueux|defectueuse|mauvais service|\bnul\b|terrible|"
    r"horrible|bacle|ne fonctionne pas|piece cassee|arnaque|decu|marbou9"
)
# "ou" alone is left out: after accent stripping it is also the conjunction
_SERVICE_QUESTION = re.compile(
    r"\b(ouvrez|ouvert|heures?|horaires?|quand|livraison|delai|garantie|situe|adresse|"
    r"localisation|ou etes|ou se trouve|ou est)\b"
)
_PRICE = re.compile(r"\b(prix|combien|cout|coute|price|cost|how much|ch7al|tarif|taklfa)\b")
_STOCK = re.compile(
    r"\b(stock|disponible|dispo|available|famma|do you have|avez vous|en stock|mawjoud)\b"
)


@dataclass(frozen=True)
class IntentDecision:
    intent: Intent
    confidence: float
    reasons: list[str] = field(default_factory=list)


class IntentDetector:
    def detect(
        self,
        message: str,
        normalized: str | None = None,
        flagged_greeting: bool = False,
        flagged_thanks: bool = False,
    ) -> IntentDecision:
        """
        Classify one user message.

        Args:
            message: Raw user message
            normalized: Dialect/AI-normalized rewrite of the message
            flagged_greeting: Greeting flag reported by the normalizer
            flagged_thanks: Thanks flag reported by the normalizer

        Returns:
            IntentDecision; PARTS_SEARCH when nothing more specific applies
        """
        raw = normalize_text(message)
        text = normalize_text(normalized) if normalized else raw

        if not raw:
            return IntentDecision(Intent.PARTS_SEARCH, 0.5, ["empty_message"])

        greets = flagged_greeting or bool(_GREETING_START.search(raw) or _GREETING_START.search(text))
        if greets:
            if _HELP_REQUEST.search(text) and not _SEARCH_WORDS.search(text):
                return IntentDecision(Intent.GREETING, 0.95, ["greeting_with_help_request"])
            if not _SEARCH_WORDS.search(text):
                return IntentDecision(Intent.GREETING, 0.95, ["greeting_only"])

        if (flagged_thanks or _THANKS.search(text)) and not _SEARCH_WORDS.search(text):
            return IntentDecision(Intent.THANKS, 0.95, ["thanks"])

        if _COMPLAINT.search(text):
            return IntentDecision(Intent.COMPLAINT, 0.95, ["complaint"])

        if _SERVICE_QUESTION.search(text):
            return IntentDecision(Intent.SERVICE_QUESTION, 0.9, ["service_question"])

        if _PRICE.search(text):
            return IntentDecision(Intent.PRICE_INQUIRY, 0.82, ["price_words"])

        if _STOCK.search(text):
            return IntentDecision(Intent.STOCK_CHECK, 0.82, ["stock_words"])

        return IntentDecision(Intent.PARTS_SEARCH, 0.72, ["default_search"])
