import pytest

from db.memory_store import InMemoryCatalogStore, InMemoryConversationStore
from search.dialect import load_dialect
from search.lexicon import load_lexicon
from tests.builders import BRAKE_PARTS, FILTERS, SHOCK_ABSORBERS, FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="session")
def lexicon():
    return load_lexicon()


@pytest.fixture(scope="session")
def dialect():
    return load_dialect()


@pytest.fixture
def catalog():
    return InMemoryCatalogStore(SHOCK_ABSORBERS + BRAKE_PARTS + FILTERS)


@pytest.fixture
def catalog_without_filters():
    return InMemoryCatalogStore(SHOCK_ABSORBERS + BRAKE_PARTS)


@pytest.fixture
def conversations():
    return InMemoryConversationStore()
