"""
Clarification state machine: NONE -> PENDING -> (ANSWERED | EXPIRED).

check_needed() decides whether a result set is ambiguous along position, side
or type. An answer is combined with the pending part name and re-filtered;
when the narrowed set is still ambiguous the caller re-enters PENDING for the
next dimension instead of guessing.
"""

import re
from dataclasses import dataclass, field

from clarification.store import ClarificationStore, PendingClarification
from models.chat_result import ClarificationDimension, ClarificationQuestion
from models.part import ScoredPart
from models.search_context import PositionRequirements
from search.lexicon import Lexicon
from search.normalizer import contains_word, normalize_text, tokenize
from search.query_classifier import designation_markers, detect_positions, satisfies
from utils.logger import get_logger

logger = get_logger(__name__)

GENERIC_QUERY_PATTERNS = (
    re.compile(r"^je cherche des pieces"),
    re.compile(r"pieces pour (?:ma |mon )?suzuki"),
    re.compile(r"^besoin de pieces"),
    re.compile(r"^quelles? pieces"),
    re.compile(r"^aide.*pieces"),
)

BRAKE_PAD_NAMES = ("plaquettes frein", "plaquette")

POSITION_OPTIONS = ("avant", "arrière")

_DIMENSION_LABELS = {
    ClarificationDimension.POSITION: "la position",
    ClarificationDimension.SIDE: "le côté",
    ClarificationDimension.TYPE: "le type",
}


@dataclass(frozen=True)
class ClarificationCheck:
    needed: bool
    dimension: ClarificationDimension | None = None
    options: tuple[str, ...] = ()


NOT_NEEDED = ClarificationCheck(needed=False)


@dataclass(frozen=True)
class CandidateDimensions:
    positions: list[str] = field(default_factory=list)
    sides: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ClarificationAnswer:
    part_name: str
    combined_query: str
    requirements: PositionRequirements
    type_label: str | None = None


class ClarificationManager:
    def __init__(self, lexicon: Lexicon, store: ClarificationStore | None = None):
        self.lexicon = lexicon
        self.store = store if store is not None else ClarificationStore()

    # ---------- state ----------

    def get_pending(self, session_id: str) -> PendingClarification | None:
        return self.store.get(session_id)

    def set_pending(
        self,
        session_id: str,
        query: str,
        check: ClarificationCheck,
        candidates: list[ScoredPart],
        part_name: str = "",
    ) -> PendingClarification:
        entry = self.store.set(
            session_id,
            original_query=query,
            dimension=check.dimension,
            candidates=candidates,
            part_name=part_name,
            options=check.options,
        )
        logger.info(
            "Clarification pending",
            extra={
                "extra_fields": {
                    "session_id": session_id,
                    "dimension": check.dimension.value,
                    "options": list(check.options),
                    "candidates": len(candidates),
                }
            },
        )
        return entry

    def clear_pending(self, session_id: str) -> None:
        self.store.clear(session_id)

    # ---------- ambiguity ----------

    def check_needed(self, products: list[ScoredPart], message: str) -> ClarificationCheck:
        """
        Decide whether products are ambiguous for the message.

        Order: generic query menu, brake pads without position, then position,
        side (bilateral parts with a position already given) and type.
        """
        if not products or len(products) <= 1:
            return NOT_NEEDED

        normalized = normalize_text(message)
        if self.is_generic_query(normalized):
            return ClarificationCheck(True, ClarificationDimension.TYPE, self.lexicon.generic_menu)

        stated = detect_positions(tokenize(normalized, preserve_short=True))

        if self.lexicon.extract_part_name(normalized) in BRAKE_PAD_NAMES:
            if stated.has_position:
                return NOT_NEEDED
            return ClarificationCheck(True, ClarificationDimension.POSITION, POSITION_OPTIONS)

        filtered = [p for p in products if satisfies(designation_markers(normalize_text(p.designation)), stated)]
        if len(filtered) == 1:
            return NOT_NEEDED

        to_analyze = filtered or products
        dims = self.extract_dimensions(to_analyze)

        if not stated.has_position and len(dims.positions) > 1:
            return ClarificationCheck(True, ClarificationDimension.POSITION, tuple(dims.positions))

        if (
            stated.has_position
            and not stated.has_side
            and len(dims.sides) > 1
            and self.is_bilateral(to_analyze)
        ):
            return ClarificationCheck(True, ClarificationDimension.SIDE, tuple(dims.sides))

        if len(dims.types) > 1 and not self._names_type(normalized):
            return ClarificationCheck(True, ClarificationDimension.TYPE, tuple(dims.types))

        return NOT_NEEDED

    def is_generic_query(self, normalized: str) -> bool:
        return any(pattern.search(normalized) for pattern in GENERIC_QUERY_PATTERNS)

    def is_bilateral(self, products: list[ScoredPart]) -> bool:
        return any(self.lexicon.is_bilateral(normalize_text(p.designation)) for p in products)

    def extract_dimensions(self, products: list[ScoredPart]) -> CandidateDimensions:
        positions: list[str] = []
        sides: list[str] = []
        types: list[str] = []

        def add(values: list[str], value: str) -> None:
            if value not in values:
                values.append(value)

        for product in products:
            designation = normalize_text(product.designation)
            markers = designation_markers(designation)
            if markers.front:
                add(positions, "avant")
            if markers.rear:
                add(positions, "arrière")
            if markers.left:
                add(sides, "gauche")
            if markers.right:
                add(sides, "droite")
            words = set(designation.split())
            for label, variants in self.lexicon.type_variants.items():
                if words & set(variants):
                    add(types, label)

        return CandidateDimensions(positions=positions, sides=sides, types=types)

    def _names_type(self, normalized: str) -> str | None:
        for label, variants in self.lexicon.type_variants.items():
            if any(contains_word(normalized, v) for v in variants):
                return label
        return None

    # ---------- answers ----------

    def is_answer(self, message: str, pending: PendingClarification) -> bool:
        """
        True when a message answers the pending question.

        Accepted: a position/side word or pair ("avant", "ar g", "gauche avant"),
        a contextual follow-up carrying one ("et pour l'arrière"), or for the
        type dimension one of the offered options. A message naming a
        different part is a new request, not an answer.
        """
        normalized = normalize_text(message)
        tokens = tokenize(normalized, preserve_short=True)
        if not tokens:
            return False

        is_type_question = pending.dimension == ClarificationDimension.TYPE
        pending_part = pending.part_name or self.lexicon.extract_part_name(pending.original_query)
        part_text = normalized
        if is_type_question and pending_part:
            # "joint" or "support" answer the type question; they do not name a new part here
            part_text = self._without_type_words(normalized, pending.options)
        named_part = self.lexicon.extract_part_name(part_text)
        if named_part and pending_part and not _same_part(named_part, pending_part):
            return False

        if is_type_question and (self._matching_option(normalized, pending.options) or self._names_type(normalized)):
            return True

        if detect_positions(tokens).any:
            return True

        # generic menu: any named part answers "which part?"
        return is_type_question and bool(named_part) and not pending_part

    def resolve(self, pending: PendingClarification, message: str) -> ClarificationAnswer:
        """Combine the pending part name, its earlier qualifiers and the answer."""
        normalized = normalize_text(message)
        answer = detect_positions(tokenize(normalized, preserve_short=True))
        prior = detect_positions(tokenize(normalize_text(pending.original_query), preserve_short=True))

        requirements = PositionRequirements(
            front=answer.front if answer.has_position else prior.front,
            rear=answer.rear if answer.has_position else prior.rear,
            left=answer.left if answer.has_side else prior.left,
            right=answer.right if answer.has_side else prior.right,
        )

        part_name = pending.part_name or self.extract_part_name(pending.original_query)
        type_label = None
        if pending.dimension == ClarificationDimension.TYPE:
            if not pending.part_name:
                part_name = self._matching_option(normalized, pending.options) or self.lexicon.extract_part_name(
                    normalized, default=normalized
                )
            else:
                type_label = self._names_type(normalized)

        words = [normalize_text(part_name)]
        if type_label:
            words.append(type_label)
        words.extend(qualifier_words(requirements))
        combined = " ".join(w for w in words if w)

        logger.info(
            "Clarification answered",
            extra={
                "extra_fields": {
                    "dimension": pending.dimension.value,
                    "part_name": part_name,
                    "combined_query": combined,
                }
            },
        )
        return ClarificationAnswer(
            part_name=part_name,
            combined_query=combined,
            requirements=requirements,
            type_label=type_label,
        )

    def refilter(
        self,
        products: list[ScoredPart],
        part_name: str,
        requirements: PositionRequirements,
        type_label: str | None = None,
    ) -> list[ScoredPart]:
        """Keep products naming the part and satisfying every stated position/side."""
        normalized_name = normalize_text(part_name)
        name_tokens = tokenize(normalized_name) or ([normalized_name] if normalized_name else [])
        type_words = self.lexicon.type_variants.get(type_label, ()) if type_label else ()

        kept = []
        for product in products:
            designation = normalize_text(product.designation)
            if name_tokens and not any(t in designation for t in name_tokens):
                continue
            if not satisfies(designation_markers(designation), requirements):
                continue
            if type_words and not any(contains_word(designation, w) for w in type_words):
                continue
            kept.append(product)
        return kept

    def extract_part_name(self, query: str) -> str:
        return self.lexicon.extract_part_name(query, default=normalize_text(query))

    def build_question(self, part_name: str, check: ClarificationCheck) -> ClarificationQuestion:
        options = list(check.options)
        bullets = "\n".join(f"• {option[:1].upper()}{option[1:]}" for option in options)
        label = _DIMENSION_LABELS[check.dimension]
        subject = part_name or "votre pièce"
        text = (
            f"Merci pour votre demande concernant {subject}.\n\n"
            f"Afin d'identifier précisément la pièce compatible, merci de préciser {label} :\n"
            f"{bullets}\n\n"
            "Dès confirmation, je pourrai vous communiquer la référence et le prix."
        )
        return ClarificationQuestion(part_name=part_name, dimension=check.dimension, options=options, text=text)

    def _matching_option(self, normalized: str, options: tuple[str, ...]) -> str | None:
        for option in options:
            if contains_word(normalized, normalize_text(option)):
                return option
        return None

    def _without_type_words(self, normalized: str, options: tuple[str, ...]) -> str:
        type_words = {normalize_text(o) for o in options}
        for variants in self.lexicon.type_variants.values():
            type_words.update(variants)
        return " ".join(t for t in normalized.split() if t not in type_words)


def qualifier_words(requirements: PositionRequirements) -> list[str]:
    words = []
    if requirements.front:
        words.append("avant")
    if requirements.rear:
        words.append("arriere")
    if requirements.left:
        words.append("gauche")
    if requirements.right:
        words.append("droite")
    return words


def _same_part(a: str, b: str) -> bool:
    a_tokens = tokenize(normalize_text(a))
    b_tokens = tokenize(normalize_text(b))
    return any(x.startswith(y) or y.startswith(x) for x in a_tokens for y in b_tokens)
