"""
Database package for the parts core.
Provides the storage contracts, in-memory stores and the SQLAlchemy adapters.
"""

from db.contracts import CandidatePredicate, CatalogStore, ConversationStore, StoredMessage
from db.engine import get_engine
from db.memory_store import InMemoryCatalogStore, InMemoryConversationStore
from db.sql_store import SqlCatalogStore, SqlConversationStore
from db.tables import TableRegistry

__all__ = [
    "CandidatePredicate",
    "CatalogStore",
    "ConversationStore",
    "InMemoryCatalogStore",
    "InMemoryConversationStore",
    "SqlCatalogStore",
    "SqlConversationStore",
    "StoredMessage",
    "TableRegistry",
    "get_engine",
]
