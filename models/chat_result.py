from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from models.part import ScoredPart


class Intent(str, Enum):
    PARTS_SEARCH = "PARTS_SEARCH"
    PRICE_INQUIRY = "PRICE_INQUIRY"
    STOCK_CHECK = "STOCK_CHECK"
    NO_RESULTS = "NO_RESULTS"
    CLARIFICATION_NEEDED = "CLARIFICATION_NEEDED"
    MODEL_MISMATCH = "MODEL_MISMATCH"
    GREETING = "GREETING"
    THANKS = "THANKS"
    COMPLAINT = "COMPLAINT"
    SERVICE_QUESTION = "SERVICE_QUESTION"


class ClarificationDimension(str, Enum):
    POSITION = "position"
    SIDE = "side"
    TYPE = "type"


@dataclass(frozen=True)
class ClarificationQuestion:
    part_name: str
    dimension: ClarificationDimension
    options: list[str]
    text: str = ""


@dataclass(frozen=True)
class ChatResult:
    """
    Structured turn outcome handed to the response templating collaborator.

    Rendering human-facing prose for products is not done here; only the
    clarification question carries a ready-made French rendering.
    """

    intent: Intent
    session_id: str
    products: list[ScoredPart] = field(default_factory=list)
    clarification: ClarificationQuestion | None = None
    search_query: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")

    @property
    def needs_clarification(self) -> bool:
        return self.intent == Intent.CLARIFICATION_NEEDED

    def to_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent.value,
            "session_id": self.session_id,
            "products": [p.to_dict() for p in self.products],
            "clarification_question": (
                {
                    "part_name": self.clarification.part_name,
                    "dimension": self.clarification.dimension.value,
                    "options": list(self.clarification.options),
                    "text": self.clarification.text,
                }
                if self.clarification
                else None
            ),
            "search_query": self.search_query,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp,
        }
