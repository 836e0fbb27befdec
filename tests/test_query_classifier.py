import pytest

from models.search_context import PositionRequirements
from search.normalizer import normalize_text, tokenize
from search.query_classifier import (
    compact_reference,
    designation_markers,
    detect_positions,
    detect_reference,
    is_position_only_query,
    is_qualifier_only,
    satisfies,
)


def _positions(text):
    return detect_positions(tokenize(normalize_text(text), preserve_short=True))


@pytest.mark.parametrize(
    "query, expected",
    [
        ("13780M62S00", "13780M62S00"),
        ("  13780m62s00 ", "13780m62s00"),
        ("SZ-1234-AB", "SZ-1234-AB"),
        ("je cherche 13780M62S00 pour ma celerio", "13780M62S00"),
        ("prix de la référence 09168M10001", "09168M10001"),
    ],
)
def test_reference_detected(query, expected):
    assert detect_reference(query) == expected


@pytest.mark.parametrize(
    "query",
    ["amortisseur avant", "AMORTISSEUR", "12345678", "ref A1B2", ""],
)
def test_free_text_is_not_a_reference(query):
    assert detect_reference(query) is None


def test_reference_later_match_wins_when_earlier_one_lacks_a_digit():
    assert detect_reference("amortisseurs 41601M62S00") == "41601M62S00"


def test_compact_reference():
    assert compact_reference("fa-172 20") == "FA17220"


def test_position_words_standalone():
    stated = _positions("amortisseur arrière")
    assert stated.rear and not stated.front
    assert not stated.has_side


def test_position_abbreviations_paired():
    stated = _positions("amortisseur av g")
    assert stated == PositionRequirements(front=True, left=True)


def test_side_before_position_paired():
    stated = _positions("feu droite-arriere")
    assert stated == PositionRequirements(rear=True, right=True)


def test_bare_letter_is_ignored_inside_free_text():
    stated = _positions("vitre d origine")
    assert not stated.any


@pytest.mark.parametrize("text", ["je suis a dar", "avg", "gar"])
def test_glued_letters_are_not_a_pair(text):
    assert not _positions(text).any


def test_bare_letter_counts_in_qualifier_only_reply():
    assert _positions("g").left
    assert _positions("av d") == PositionRequirements(front=True, right=True)


def test_qualifier_only_and_position_only():
    assert is_qualifier_only(["avant", "gauche"])
    assert not is_qualifier_only(["amortisseur", "avant"])
    assert not is_qualifier_only([])
    assert is_position_only_query(["avant"])
    assert not is_position_only_query(["avant", "gauche"])


def test_designation_markers_and_satisfies():
    markers = designation_markers(normalize_text("AMORTISSEUR AV G"))
    assert markers == PositionRequirements(front=True, left=True)
    assert satisfies(markers, PositionRequirements(front=True))
    assert not satisfies(markers, PositionRequirements(front=True, right=True))
    assert satisfies(markers, PositionRequirements())
