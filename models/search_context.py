"""Per-request search state built by the query pipeline."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PositionRequirements:
    front: bool = False
    rear: bool = False
    left: bool = False
    right: bool = False

    @property
    def any(self) -> bool:
        return self.front or self.rear or self.left or self.right

    @property
    def has_position(self) -> bool:
        return self.front or self.rear

    @property
    def has_side(self) -> bool:
        return self.left or self.right


@dataclass(frozen=True)
class SearchContext:
    """
    Parsed view of one query.

    Attributes:
        raw_tokens: Ordered tokens longer than two characters
        position_tokens: Ordered tokens including short ones ("av", "g")
        expanded_terms: Raw tokens enriched with synonym categories
        search_terms: Raw tokens then expansions, deduplicated, in insertion order
        positions: Front/rear/left/right requirements stated in the query
        main_part_type: Category tag of the part being asked for, if any
        original_query: Query text as received
        normalized_query: Canonical form of the query
        dialect_detected: True when the query was rewritten from dialect/slang
    """

    raw_tokens: tuple[str, ...]
    position_tokens: tuple[str, ...]
    expanded_terms: frozenset[str]
    search_terms: tuple[str, ...]
    positions: PositionRequirements
    main_part_type: str | None
    original_query: str
    normalized_query: str
    dialect_detected: bool = False
    requested_model: str | None = None
