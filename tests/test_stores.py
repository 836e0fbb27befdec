import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import text

from db.contracts import CandidatePredicate
from db.engine import create_db_engine, get_database_url
from db.memory_store import InMemoryCatalogStore, InMemoryConversationStore
from db.sql_store import SqlCatalogStore, SqlConversationStore
from db.tables import TableRegistry
from search.predicate import (
    build_candidate_predicate,
    build_exact_reference_predicate,
    build_partial_reference_predicate,
)
from tests.builders import FILTERS, SHOCK_ABSORBERS


# ---------- predicates ----------


def test_candidate_predicate_drops_single_letters_after_capping():
    predicate = build_candidate_predicate(["amortisseur", "av", "g", "amorto", "amort"], max_terms=3, limit=50)
    assert predicate.any_terms == ("amortisseur", "av")
    assert predicate.limit == 50


def test_candidate_predicate_can_be_empty():
    assert build_candidate_predicate(["g", "d"]).is_empty


def test_exact_reference_predicate_adds_compact_form():
    assert build_exact_reference_predicate("fa-172 20").reference_equals == ("fa-172 20", "FA17220")
    assert build_exact_reference_predicate(" 13780M62S00 ").reference_equals == ("13780M62S00",)


def test_partial_reference_predicate():
    predicate = build_partial_reference_predicate("13780M62S00", limit=10)
    assert predicate.reference_contains == ("13780M62S00",)
    assert predicate.limit == 10


# ---------- in-memory stores ----------


def test_memory_catalog_matches_designation_or_reference():
    store = InMemoryCatalogStore(SHOCK_ABSORBERS + FILTERS)
    found = asyncio.run(store.find_candidates(CandidatePredicate(any_terms=("Amortisseur AV", "16510m"))))
    assert [p.reference for p in found] == ["41601M62S00", "41602M62S00", "16510M68K00"]


def test_memory_catalog_reference_predicates_and_limit():
    store = InMemoryCatalogStore(SHOCK_ABSORBERS + FILTERS)
    exact = asyncio.run(store.find_candidates(CandidatePredicate(reference_equals=("13780m62s00",))))
    assert [p.designation for p in exact] == ["FILTRE A AIR CELERIO"]

    partial = asyncio.run(store.find_candidates(CandidatePredicate(reference_contains=("M62S00",), limit=2)))
    assert len(partial) == 2


def test_memory_catalog_empty_predicate_returns_nothing():
    store = InMemoryCatalogStore(SHOCK_ABSORBERS)
    assert asyncio.run(store.find_candidates(CandidatePredicate())) == []
    assert len(store.calls) == 1


def test_memory_conversation_keeps_order():
    store = InMemoryConversationStore()

    async def run():
        await store.append_message("s1", "user", "amortisseur")
        await store.append_message("s1", "bot", "[CLARIFICATION_NEEDED] 4 produit(s)")
        await store.append_message("s2", "user", "phare")
        return await store.get_history("s1")

    history = asyncio.run(run())
    assert [(m.sender, m.text) for m in history] == [
        ("user", "amortisseur"),
        ("bot", "[CLARIFICATION_NEEDED] 4 produit(s)"),
    ]
    assert history[0].is_user and not history[1].is_user


# ---------- SQLAlchemy adapters ----------


@pytest.fixture
def sqlite_engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'pieces.db'}")
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE pieces_rechange (id INTEGER PRIMARY KEY, designation TEXT, "
                "reference TEXT, stock INTEGER, prix_ht NUMERIC, marque TEXT)"
            )
        )
        conn.execute(
            text(
                "CREATE TABLE chat_messages (id INTEGER PRIMARY KEY, session_id TEXT, "
                "sender TEXT, message TEXT, timestamp DATETIME)"
            )
        )
        conn.execute(
            text(
                "INSERT INTO pieces_rechange (designation, reference, stock, prix_ht, marque) VALUES "
                "('AMORTISSEUR AV G', '41601M62S00', 5, 120, 'SUZUKI'), "
                "('FILTRE A AIR CELERIO', '13780M62S00', NULL, 35, 'SUZUKI'), "
                "('JOINT 100%_ETANCHE', 'J-100', 1, NULL, NULL)"
            )
        )
    yield engine
    engine.dispose()


def test_sql_catalog_ors_terms_case_insensitively(sqlite_engine):
    store = SqlCatalogStore(sqlite_engine, TableRegistry(sqlite_engine, schema=None))
    found = asyncio.run(store.find_candidates(CandidatePredicate(any_terms=("amortisseur", "13780m"))))

    by_reference = {p.reference: p for p in found}
    assert set(by_reference) == {"41601M62S00", "13780M62S00"}
    shock = by_reference["41601M62S00"]
    assert shock.stock == 5
    assert shock.unit_price == Decimal("120")
    assert shock.extra == {"marque": "SUZUKI"}
    assert by_reference["13780M62S00"].stock == 0


def test_sql_catalog_escapes_like_wildcards(sqlite_engine):
    store = SqlCatalogStore(sqlite_engine, TableRegistry(sqlite_engine, schema=None))
    found = asyncio.run(store.find_candidates(CandidatePredicate(any_terms=("100%_",))))
    assert [p.reference for p in found] == ["J-100"]
    assert found[0].unit_price is None


def test_sql_catalog_reference_equality(sqlite_engine):
    store = SqlCatalogStore(sqlite_engine, TableRegistry(sqlite_engine, schema=None))
    found = asyncio.run(store.find_candidates(CandidatePredicate(reference_equals=("41601m62s00",))))
    assert [p.designation for p in found] == ["AMORTISSEUR AV G"]
    assert asyncio.run(store.find_candidates(CandidatePredicate())) == []


def test_sql_conversation_round_trip(sqlite_engine):
    store = SqlConversationStore(sqlite_engine, TableRegistry(sqlite_engine, schema=None))

    async def run():
        await store.append_message("s1", "user", "amortisseur")
        await store.append_message("s1", "bot", "[CLARIFICATION_NEEDED] 4 produit(s)")
        return await store.get_history("s1")

    history = asyncio.run(run())
    assert [m.text for m in history] == ["amortisseur", "[CLARIFICATION_NEEDED] 4 produit(s)"]
    assert history[0].is_user


def test_unknown_table_rejected(sqlite_engine):
    with pytest.raises(ValueError, match="Unknown table"):
        TableRegistry(sqlite_engine, schema=None).get("orders")


def test_database_url_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError, match="DATABASE_URL"):
        get_database_url()
