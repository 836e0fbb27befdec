import pytest

from search.dialect import DialectDictionary
from search.lexicon import Lexicon
from search.normalizer import contains_word, normalize_text, tokenize
from search.synonyms import SynonymIndex, search_form


def test_normalize_strips_accents_and_punctuation():
    assert normalize_text("Amortisseur ARRIÈRE, côté gauche!") == "amortisseur arriere cote gauche"


def test_normalize_keeps_hyphens_and_collapses_whitespace():
    assert normalize_text("  Pare-Brise   S-PRESSO ") == "pare-brise s-presso"


def test_normalize_empty_input():
    assert normalize_text(None) == ""
    assert normalize_text("   ") == ""


def test_tokenize_drops_short_tokens_unless_preserved():
    normalized = normalize_text("amortisseur av g")
    assert tokenize(normalized) == ["amortisseur"]
    assert tokenize(normalized, preserve_short=True) == ["amortisseur", "av", "g"]


def test_contains_word_respects_boundaries():
    assert contains_word("plaquette frein av", "frein")
    assert not contains_word("plaquette freins av", "frein")
    assert not contains_word("anything", "")


def test_dialect_rewrites_whole_words_only():
    dictionary = DialectDictionary.from_mapping({"phrases": {"n7eb": "je veux", "frain": "frein"}})
    assert dictionary.apply("N7eb plaquette frain") == "je veux plaquette frein"
    assert dictionary.apply("frainage") is None


def test_dialect_signals_no_match_with_none():
    dictionary = DialectDictionary.from_mapping({"phrases": {"behi": "ok"}})
    assert dictionary.apply("amortisseur avant") is None


def test_dialect_prefers_longest_phrase(dialect):
    assert dialect.apply("ken famma amortisseur") == "est-ce qu'il y a amortisseur"


def test_dialect_ignores_identity_entries():
    dictionary = DialectDictionary.from_mapping({"phrases": {"merci": "merci", "3aychek": "merci"}})
    assert dictionary.apply("merci") is None
    assert dictionary.apply("3aychek") == "merci"


def test_dialect_greeting_and_thanks(dialect):
    assert dialect.starts_with_greeting("Salem, n7eb filtre")
    assert not dialect.starts_with_greeting("highway")
    assert dialect.starts_with_thanks("3aychek barcha")


def test_dialect_missing_phrases_rejected():
    with pytest.raises(ValueError):
        DialectDictionary.from_mapping({"greetings": ["salut"]})


def test_dialect_missing_file_rejected(tmp_path):
    with pytest.raises(ValueError):
        DialectDictionary.from_yaml(tmp_path / "absent.yaml")


def test_synonym_expansion_adds_category_and_one_variant():
    index = SynonymIndex({"frein": ["frein", "freins", "brake", "frain"]})
    assert index.expand(["brake"]) == ["brake", "frein", "freins"]


def test_synonym_expansion_caps_extra_terms_per_token(lexicon):
    index = SynonymIndex(lexicon.synonyms)
    for token in ["amortisseur", "plak", "batri", "retro", "filtre"]:
        expanded = index.expand([token])
        assert expanded[0] == token
        assert len(expanded) <= 3


def test_synonym_expansion_keeps_unknown_tokens_and_dedupes():
    index = SynonymIndex({"frein": ["frein", "freins"]})
    assert index.expand(["frein", "bizarre", "freins"]) == ["frein", "freins", "bizarre"]


def test_synonym_index_first_category_wins():
    index = SynonymIndex({"vitre": ["vitre", "glace"], "lunette": ["lunette", "glace"]})
    assert index.category_of("glace") == "vitre"


def test_synonym_index_normalizes_members():
    index = SynonymIndex({"retroviseur": ["Rétroviseur", "rétro"]})
    assert "retro" in index
    assert index.category_of("retroviseur") == "retroviseur"


def test_search_form_of_compound_category():
    assert search_form("maitre_cylindre") == "maitre cylindre"


def test_lexicon_extracts_compound_names_first(lexicon):
    assert lexicon.extract_part_name("je cherche plaquettes de frein avant") == "plaquettes frein"
    assert lexicon.extract_part_name("filtre à huile swift") == "filtre huile"
    assert lexicon.extract_part_name("amortisseur avant") == "amortisseur"
    assert lexicon.extract_part_name("bonjour", default="?") == "?"


def test_lexicon_accessory_depends_on_query(lexicon):
    assert lexicon.is_accessory("support amortisseur", "amortisseur")
    assert not lexicon.is_accessory("support amortisseur", "support amortisseur")


def test_lexicon_missing_keys_rejected():
    with pytest.raises(ValueError, match="missing"):
        Lexicon.from_mapping({"synonyms": {}})


def test_lexicon_bad_synonym_list_rejected():
    data = {
        "synonyms": {"frein": "frein"},
        "type_weights": {},
        "accessory_words": [],
        "bilateral_parts": [],
        "part_names": {},
        "topics": {},
    }
    with pytest.raises(ValueError):
        Lexicon.from_mapping(data)


def test_lexicon_vehicle_models_loaded(lexicon):
    assert "S-PRESSO" in lexicon.vehicle_models
    assert "CELERIO" in lexicon.vehicle_models
