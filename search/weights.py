"""Named scoring weights and selection thresholds for the ranking policy."""

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class ScoringWeights:
    # reference component
    reference_exact: int = 1000
    reference_contains: int = 400

    # content component
    token_match: int = 1000
    type_present: int = 2500
    type_absent: int = -4000
    type_exact: int = 5000
    type_prefix: int = 3000
    type_word: int = 2000
    accessory: int = -3500
    query_equals_reference: int = 400
    query_in_reference: int = 200
    all_tokens_present: int = 150
    main_type_base: int = 150
    cooccurring_type_base: int = 15

    # position component
    position_match: int = 300
    position_conflict: int = -500

    # business component
    in_stock: int = 8
    model_match: int = 50

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Any] | None) -> "ScoringWeights":
        """Build weights from a partial mapping; unknown keys raise ValueError."""
        return _apply_overrides(cls(), overrides)


@dataclass(frozen=True)
class SelectionPolicy:
    min_score_default: int = 8
    min_score_dialect: int = 5
    min_score_position_only: int = 0
    cap_with_position: int = 5
    cap_default: int = 10
    cap_max: int = 15

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Any] | None) -> "SelectionPolicy":
        return _apply_overrides(cls(), overrides)


def _apply_overrides(base, overrides):
    if not overrides:
        return base
    known = {f.name for f in fields(base)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unknown weight(s): {', '.join(unknown)}")
    return replace(base, **{k: int(v) for k, v in overrides.items()})


DEFAULT_WEIGHTS = ScoringWeights()
DEFAULT_POLICY = SelectionPolicy()
