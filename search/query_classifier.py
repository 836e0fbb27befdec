"""
Query classification: reference-code detection and position/side requirements.

Reference detection runs on the raw query, before any normalization, so that
codes keep their original shape. Position detection works on the token list
that keeps short abbreviations ("av", "ar", "g", "d").
"""

import re

from models.search_context import PositionRequirements
from utils.logger import get_logger

logger = get_logger(__name__)

# Most specific first; the first capture with a letter, a digit and 8+ chars wins.
REFERENCE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"^\s*([A-Z0-9]{8,}(?:-[A-Z0-9]+)*)\s*$", re.IGNORECASE),
    re.compile(r"^\s*([A-Z]{2}-\d{4,}-[A-Z0-9]{2,}(?:-[A-Z0-9]+)*)\s*$", re.IGNORECASE),
    re.compile(r"\b([A-Z0-9]{8,})\b", re.IGNORECASE),
    re.compile(r"\b([A-Z]{2}-?\d{4,}-?[A-Z0-9]{2,}(?:-[A-Z0-9]+)*)\b", re.IGNORECASE),
    re.compile(r"\br[eé]f[eé]rence[\s:]*([A-Z0-9]{5,}[-_]?[A-Z0-9]*)\b", re.IGNORECASE),
)

MIN_REFERENCE_LENGTH = 8

_HAS_LETTER = re.compile(r"[A-Za-z]")
_HAS_DIGIT = re.compile(r"\d")

FRONT_WORDS = frozenset({"avant", "av", "avent"})
REAR_WORDS = frozenset({"arriere", "ar"})
LEFT_WORDS = frozenset({"gauche", "g", "conducteur", "gosh"})
RIGHT_WORDS = frozenset({"droite", "droit", "d", "passager"})
# single letters are only trusted next to a position word or in a qualifier-only reply
AMBIGUOUS_SHORT = frozenset({"g", "d"})

QUALIFIER_WORDS = FRONT_WORDS | REAR_WORDS | LEFT_WORDS | RIGHT_WORDS

_FRONT = r"(?:avant|av|avent)"
_REAR = r"(?:arriere|ar)"
_LEFT = r"(?:gauche|g|conducteur|gosh)"
_RIGHT = r"(?:droite|droit|d|passager)"
_SIDE = rf"(?:{_LEFT}|{_RIGHT})"
_POSITION = rf"(?:{_FRONT}|{_REAR})"


def _paired(first: str, second: str) -> re.Pattern:
    return re.compile(rf"\b{first}[\s-]+{second}\b|\b{second}[\s-]+{first}\b")


_FRONT_PAIRED = _paired(_FRONT, _SIDE)
_REAR_PAIRED = _paired(_REAR, _SIDE)
_LEFT_PAIRED = _paired(_LEFT, _POSITION)
_RIGHT_PAIRED = _paired(_RIGHT, _POSITION)

_DESIGNATION_FRONT = re.compile(r"\b(?:avant|av)\b")
_DESIGNATION_REAR = re.compile(r"\b(?:arriere|ar)\b")
_DESIGNATION_LEFT = re.compile(r"\b(?:gauche|g|conducteur)\b")
_DESIGNATION_RIGHT = re.compile(r"\b(?:droite|droit|d|passager)\b")


def detect_reference(raw_query: str) -> str | None:
    """
    Find a catalog reference code in a raw query.

    Args:
        raw_query: Query exactly as the user typed it

    Returns:
        The captured reference, or None for a free-text query
    """
    if not raw_query:
        return None
    for index, pattern in enumerate(REFERENCE_PATTERNS):
        for match in pattern.finditer(raw_query):
            candidate = match.group(1)
            if is_reference_like(candidate):
                logger.debug(
                    "Reference pattern matched",
                    extra={"extra_fields": {"pattern_index": index, "reference": candidate}},
                )
                return candidate
    return None


def is_reference_like(candidate: str) -> bool:
    return (
        len(candidate) >= MIN_REFERENCE_LENGTH
        and _HAS_LETTER.search(candidate) is not None
        and _HAS_DIGIT.search(candidate) is not None
    )


def compact_reference(reference: str) -> str:
    """Alphanumeric-only, upper-case form of a reference ("fa-17220" -> "FA17220")."""
    return re.sub(r"[^A-Z0-9]", "", reference.upper())


def is_qualifier_only(tokens) -> bool:
    """True when every token is a position/side word ("av g", "gauche")."""
    tokens = list(tokens)
    return bool(tokens) and all(t in QUALIFIER_WORDS for t in tokens)


def detect_positions(position_tokens) -> PositionRequirements:
    """
    Position/side requirements stated in a query.

    A word counts standalone ("avant") or paired with its counterpart
    ("av g", "gauche-avant"). Bare "g"/"d" only count when paired or when the
    whole query is made of qualifiers.

    Args:
        position_tokens: Canonical tokens including short ones

    Returns:
        PositionRequirements
    """
    tokens = list(position_tokens)
    qualifier_only = is_qualifier_only(tokens)
    standalone = {t for t in tokens if qualifier_only or t not in AMBIGUOUS_SHORT}
    text = " ".join(tokens)

    return PositionRequirements(
        front=bool(standalone & FRONT_WORDS) or _FRONT_PAIRED.search(text) is not None,
        rear=bool(standalone & REAR_WORDS) or _REAR_PAIRED.search(text) is not None,
        left=bool(standalone & LEFT_WORDS) or _LEFT_PAIRED.search(text) is not None,
        right=bool(standalone & RIGHT_WORDS) or _RIGHT_PAIRED.search(text) is not None,
    )


def designation_markers(normalized_designation: str) -> PositionRequirements:
    """Which positions/sides a canonical designation carries ("amortisseur av g")."""
    return PositionRequirements(
        front=_DESIGNATION_FRONT.search(normalized_designation) is not None,
        rear=_DESIGNATION_REAR.search(normalized_designation) is not None,
        left=_DESIGNATION_LEFT.search(normalized_designation) is not None,
        right=_DESIGNATION_RIGHT.search(normalized_designation) is not None,
    )


def satisfies(markers: PositionRequirements, required: PositionRequirements) -> bool:
    """True when a designation's markers cover every stated requirement."""
    if required.front and not markers.front:
        return False
    if required.rear and not markers.rear:
        return False
    if required.left and not markers.left:
        return False
    if required.right and not markers.right:
        return False
    return True


def is_position_only_query(position_tokens) -> bool:
    """Exactly one token, and it is a bare position/side word."""
    tokens = list(position_tokens)
    return len(tokens) == 1 and tokens[0] in QUALIFIER_WORDS
