import asyncio
import uuid

import pytest

from clarification.manager import ClarificationManager
from clarification.store import ClarificationStore
from config.config import Config
from context.context_tracker import ContextTracker
from db.memory_store import InMemoryCatalogStore
from models.chat_result import ClarificationDimension, Intent
from orchestrator.core import PartsOrchestrator
from search.engine import SearchEngine
from search.query_normalizer import DialectQueryNormalizer, FallbackQueryNormalizer
from tests.builders import make_part


def _build(catalog, conversations, lexicon, dialect, clock):
    return PartsOrchestrator(
        engine=SearchEngine(catalog, lexicon),
        conversations=conversations,
        clarifications=ClarificationManager(lexicon, ClarificationStore(ttl_seconds=600, clock=clock)),
        context_tracker=ContextTracker(conversations, lexicon, dialect, ttl_seconds=300, clock=clock),
        normalizer=FallbackQueryNormalizer(DialectQueryNormalizer(dialect)),
    )


@pytest.fixture
def orchestrator(catalog, conversations, lexicon, dialect, clock):
    return _build(catalog, conversations, lexicon, dialect, clock)


def _send(orchestrator, message, session_id="s1", vehicle_model=None):
    return asyncio.run(orchestrator.process_message(message, session_id, vehicle_model))


def _history(conversations, session_id="s1"):
    return asyncio.run(conversations.get_history(session_id))


# ---------- clarification flow ----------


def test_position_then_side_then_single_result(orchestrator):
    first = _send(orchestrator, "amortisseur")
    assert first.intent == Intent.CLARIFICATION_NEEDED
    assert first.clarification.dimension == ClarificationDimension.POSITION
    assert first.clarification.options == ["avant", "arrière"]
    assert len(first.products) == 4

    second = _send(orchestrator, "avant")
    assert second.intent == Intent.CLARIFICATION_NEEDED
    assert second.clarification.dimension == ClarificationDimension.SIDE
    assert second.search_query == "amortisseur avant"
    assert [p.reference for p in second.products] == ["41601M62S00", "41602M62S00"]

    third = _send(orchestrator, "gauche")
    assert third.intent == Intent.PARTS_SEARCH
    assert third.clarification is None
    assert [p.reference for p in third.products] == ["41601M62S00"]
    assert third.search_query == "amortisseur avant gauche"
    assert third.metadata["clarified_dimension"] == "side"
    assert third.metadata["confidence"] == "HIGH"
    assert orchestrator.clarifications.get_pending("s1") is None


def test_expired_clarification_is_treated_as_absent(orchestrator, clock):
    _send(orchestrator, "amortisseur")
    clock.advance(601)

    result = _send(orchestrator, "avant")
    assert "clarified_dimension" not in result.metadata
    # rebuilt from context as a fresh search: all four shock absorbers come back
    assert result.search_query == "amortisseur avant"
    assert len(result.products) == 4
    assert result.clarification.dimension == ClarificationDimension.SIDE


def test_new_request_supersedes_pending_question(orchestrator):
    _send(orchestrator, "amortisseur")

    result = _send(orchestrator, "filtre a huile")
    assert result.intent == Intent.PARTS_SEARCH
    assert result.products[0].designation == "FILTRE A HUILE SWIFT"
    assert orchestrator.clarifications.get_pending("s1") is None


def test_small_talk_keeps_pending_question(orchestrator):
    _send(orchestrator, "amortisseur")

    result = _send(orchestrator, "merci")
    assert result.intent == Intent.THANKS
    assert orchestrator.clarifications.get_pending("s1") is not None


# ---------- searches ----------


def test_follow_up_reuses_part_and_side(orchestrator):
    first = _send(orchestrator, "amortisseur avant gauche")
    assert first.intent == Intent.PARTS_SEARCH
    assert first.products[0].reference == "41601M62S00"

    second = _send(orchestrator, "et pour l'arriere")
    assert second.intent == Intent.PARTS_SEARCH
    assert second.search_query == "amortisseur arriere gauche"
    assert second.products[0].reference == "41800M62S00"


def test_reference_lookup(orchestrator, catalog):
    result = _send(orchestrator, "13780M62S00")
    assert result.intent == Intent.PARTS_SEARCH
    assert [p.designation for p in result.products] == ["FILTRE A AIR CELERIO"]
    assert result.metadata["reference"] == "13780M62S00"
    assert len(catalog.calls) == 1


def test_unknown_reference_tries_exact_then_partial(orchestrator, catalog):
    result = _send(orchestrator, "99999X99999")
    assert result.intent == Intent.NO_RESULTS
    assert result.products == []
    assert len(catalog.calls) == 2
    assert catalog.calls[0].reference_equals == ("99999X99999",)
    assert catalog.calls[1].reference_contains == ("99999X99999",)


def test_wrong_category_is_no_results(catalog_without_filters, conversations, lexicon, dialect, clock):
    orchestrator = _build(catalog_without_filters, conversations, lexicon, dialect, clock)
    result = _send(orchestrator, "filtre frein")
    assert result.intent == Intent.NO_RESULTS
    assert result.products == []
    assert result.metadata["confidence"] == "LOW"


def test_price_words_label_the_search(orchestrator):
    result = _send(orchestrator, "prix filtre a huile")
    assert result.intent == Intent.PRICE_INQUIRY
    assert result.products[0].designation == "FILTRE A HUILE SWIFT"
    assert result.metadata["available_count"] == len(result.products)


@pytest.mark.parametrize("message", ["x", " ", ""])
def test_too_short_query_returns_nothing(orchestrator, catalog, message):
    result = _send(orchestrator, message)
    assert result.intent == Intent.NO_RESULTS
    assert result.products == []
    assert catalog.calls == []


class _UnreachableCatalog:
    async def find_candidates(self, predicate):
        raise ConnectionError("catalog offline")


def test_catalog_failure_propagates(conversations, lexicon, dialect, clock):
    orchestrator = _build(_UnreachableCatalog(), conversations, lexicon, dialect, clock)
    with pytest.raises(ConnectionError, match="catalog offline"):
        _send(orchestrator, "filtre a huile")


# ---------- vehicle model ----------


def test_other_model_products_filtered(conversations, lexicon, dialect, clock):
    catalog = InMemoryCatalogStore(
        [
            make_part("PLAQUETTE FREIN AV SWIFT", "55810M68K00", stock=2),
            make_part("PLAQUETTE FREIN AV CELERIO", "55810M62S00", stock=2),
        ]
    )
    orchestrator = _build(catalog, conversations, lexicon, dialect, clock)
    result = _send(orchestrator, "plaquette frein avant", vehicle_model="CELERIO")
    assert result.intent == Intent.PARTS_SEARCH
    assert [p.reference for p in result.products] == ["55810M62S00"]


def test_only_other_model_products_is_a_mismatch(conversations, lexicon, dialect, clock):
    catalog = InMemoryCatalogStore([make_part("FILTRE A AIR CELERIO", "13780M62S00", stock=4)])
    orchestrator = _build(catalog, conversations, lexicon, dialect, clock)
    result = _send(orchestrator, "filtre a air", vehicle_model="SWIFT")
    assert result.intent == Intent.MODEL_MISMATCH
    assert [p.reference for p in result.products] == ["13780M62S00"]
    assert result.metadata["requested_model"] == "SWIFT"


# ---------- conversational intents ----------


@pytest.mark.parametrize(
    "message, intent",
    [
        ("Bonjour", Intent.GREETING),
        ("salem", Intent.GREETING),
        ("3aychek", Intent.THANKS),
        ("Pièce défectueuse, pas content", Intent.COMPLAINT),
        ("Vous êtes ouvert le samedi ?", Intent.SERVICE_QUESTION),
    ],
)
def test_conversational_messages_skip_search(orchestrator, catalog, message, intent):
    result = _send(orchestrator, message)
    assert result.intent == intent
    assert result.products == []
    assert catalog.calls == []


def test_both_turns_are_recorded(orchestrator, conversations):
    _send(orchestrator, "Bonjour")
    _send(orchestrator, "amortisseur")

    history = _history(conversations)
    assert [m.sender for m in history] == ["user", "bot", "user", "bot"]
    assert history[1].text == "[GREETING] 0 produit(s)"
    assert "la position" in history[3].text


def test_session_id_generated_when_missing(orchestrator):
    result = asyncio.run(orchestrator.process_message("Bonjour"))
    assert uuid.UUID(result.session_id)


def test_result_serializes(orchestrator):
    payload = _send(orchestrator, "amortisseur").to_dict()
    assert payload["intent"] == "CLARIFICATION_NEEDED"
    assert payload["clarification_question"]["dimension"] == "position"
    assert payload["products"][0]["reference"] == "41601M62S00"


# ---------- wiring ----------


def test_build_from_config_and_lifecycle(monkeypatch, catalog, conversations):
    monkeypatch.delenv("QUERY_NORMALIZER_PROVIDER", raising=False)
    monkeypatch.setenv("CLARIFICATION_TTL_SECONDS", "120")
    orchestrator = PartsOrchestrator.build(catalog, conversations, Config())

    assert orchestrator.normalizer.primary is None
    assert orchestrator.clarifications.store.ttl_seconds == 120

    async def run():
        orchestrator.start()
        running = orchestrator.sweeper.running
        await orchestrator.close()
        return running

    assert asyncio.run(run())
    assert not orchestrator.sweeper.running
    assert orchestrator.sweeper.also_sweep == (orchestrator.context_tracker,)
