import re
from dataclasses import dataclass
from enum import Enum

from search.normalizer import normalize_text

_PART_KEYWORDS = (
    "filtre",
    "plaquette",
    "disque",
    "amortisseur",
    "phare",
    "batterie",
    "courroie",
    "bougie",
    "alternateur",
    "demarreur",
    "capteur",
    "pneu",
    "tuyau",
    "joint",
    "durite",
    "radiateur",
    "condenseur",
    "pompe",
    "injecteur",
    "embrayage",
    "roulement",
)
_POSITION = re.compile(r"\b(avant|arriere|gauche|droite|av|ar|g|d|conducteur|passager)\b")
_VEHICLE_MODEL = re.compile(r"\b(celerio|spresso|s-presso|swift|vitara)\b")
_REFERENCE_LIKE = re.compile(r"[a-z0-9]{5,}[-_]?[a-z0-9]{2,}")
_ACTION_VERB = re.compile(r"cherche|besoin|avoir|achete|shop|buy|trouve")
_QUANTITY = re.compile(r"\d+\s*(pieces?|pcs?|qty|quantite)|\b(un|une|deux|trois|plusieurs|barcha)\b")
_UNCERTAINTY = re.compile(r"i think|maybe|not sure|possible|pas sur|je crois|genre|environ")
_VAGUENESS = re.compile(r"truc|machin|bidule|chose|pas exactement|genre|vaguement")

MAX_CLARITY = 20
EXACT_MATCH_SCORE = 500


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class ConfidenceDecision:
    score: float
    level: ConfidenceLevel


def analyze_query_clarity(message: str) -> int:
    """
    Rate how precisely a message describes a part, from 0 to 20.

    Part names weigh most (15), then position (10), vehicle model (8),
    reference-like tokens (7), action verbs (5) and quantities (3).
    Uncertainty costs 5 and vague words cost 8.
    """
    if not message:
        return 0
    text = normalize_text(message)

    clarity = 0
    if any(k in text for k in _PART_KEYWORDS):
        clarity += 15
    if _POSITION.search(text):
        clarity += 10
    if _VEHICLE_MODEL.search(text):
        clarity += 8
    if _REFERENCE_LIKE.search(text):
        clarity += 7
    if _ACTION_VERB.search(text):
        clarity += 5
    if _QUANTITY.search(text):
        clarity += 3

    if _UNCERTAINTY.search(text) or message.strip().endswith("?"):
        clarity -= 5
    if _VAGUENESS.search(text):
        clarity -= 8

    return max(0, min(clarity, MAX_CLARITY))


def calculate_confidence(
    products_found: int,
    exact_match: bool,
    conversation_length: int,
    query_clarity: int,
) -> ConfidenceDecision:
    score = 0.0

    if products_found > 0:
        if exact_match:
            score += 50
        elif products_found == 1:
            score += 35
        elif products_found <= 3:
            score += 40
        else:
            score += 30
    else:
        score -= 15

    if conversation_length > 0:
        score += min(conversation_length * 2.5, 25)

    score += max(0, min(query_clarity, MAX_CLARITY))

    if exact_match and products_found > 0:
        score += 15

    if query_clarity < 5 and products_found == 0:
        score -= 10

    score = max(0.0, min(score, 100.0))

    if score >= 75:
        level = ConfidenceLevel.HIGH
    elif score >= 50:
        level = ConfidenceLevel.MEDIUM
    else:
        level = ConfidenceLevel.LOW
    return ConfidenceDecision(score=score, level=level)
