"""
SQLAlchemy Core adapters for the catalog and conversation contracts.

Design principles:
- Tables are reflected, never created
- Reads and writes run in a worker thread so the core awaits once per call
- Errors propagate unchanged; retries belong to the caller
"""

import asyncio
from datetime import datetime

from sqlalchemy import Engine, func, insert, or_, select

from db.contracts import CandidatePredicate, StoredMessage
from db.engine import get_engine
from db.tables import TableRegistry
from models.part import Part
from utils.logger import get_logger

logger = get_logger(__name__)


class SqlCatalogStore:
    """Catalog backed by the pieces_rechange table."""

    def __init__(self, engine: Engine | None = None, tables: TableRegistry | None = None):
        self._engine = engine or get_engine()
        self._tables = tables or TableRegistry(self._engine)

    async def find_candidates(self, predicate: CandidatePredicate) -> list[Part]:
        if predicate.is_empty:
            return []
        return await asyncio.to_thread(self._find_candidates_sync, predicate)

    def _find_candidates_sync(self, predicate: CandidatePredicate) -> list[Part]:
        pieces = self._tables.get("pieces_rechange")
        designation = pieces.c.designation
        reference = pieces.c.reference

        clauses = []
        for term in predicate.any_terms:
            pattern = f"%{_escape_like(term)}%"
            clauses.append(designation.ilike(pattern, escape="\\"))
            clauses.append(reference.ilike(pattern, escape="\\"))
        for value in predicate.reference_equals:
            clauses.append(func.lower(reference) == value.lower())
        for value in predicate.reference_contains:
            clauses.append(reference.ilike(f"%{_escape_like(value)}%", escape="\\"))

        stmt = select(pieces).where(or_(*clauses)).limit(predicate.limit)

        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()

        logger.debug(
            "Catalog candidates fetched",
            extra={"extra_fields": {"terms": len(predicate.any_terms), "rows": len(rows)}},
        )
        return [_row_to_part(row) for row in rows]


class SqlConversationStore:
    """Conversation history backed by the chat_messages table."""

    def __init__(self, engine: Engine | None = None, tables: TableRegistry | None = None):
        self._engine = engine or get_engine()
        self._tables = tables or TableRegistry(self._engine)

    async def get_history(self, session_id: str) -> list[StoredMessage]:
        return await asyncio.to_thread(self._get_history_sync, session_id)

    async def append_message(self, session_id: str, sender: str, text: str) -> None:
        await asyncio.to_thread(self._append_sync, session_id, sender, text)

    def _get_history_sync(self, session_id: str) -> list[StoredMessage]:
        messages = self._tables.get("chat_messages")
        stmt = (
            select(messages.c.session_id, messages.c.sender, messages.c.message, messages.c.timestamp)
            .where(messages.c.session_id == session_id)
            .order_by(messages.c.timestamp.asc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [
            StoredMessage(session_id=row.session_id, sender=row.sender, text=row.message, timestamp=row.timestamp)
            for row in rows
        ]

    def _append_sync(self, session_id: str, sender: str, text: str) -> None:
        messages = self._tables.get("chat_messages")
        stmt = insert(messages).values(
            session_id=session_id,
            sender=sender,
            message=text,
            timestamp=datetime.utcnow(),
        )
        with self._engine.begin() as conn:
            conn.execute(stmt)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_part(row) -> Part:
    known = {"id", "designation", "reference", "stock", "prix_ht"}
    return Part(
        id=row.get("id"),
        designation=row["designation"] or "",
        reference=row["reference"] or "",
        stock=int(row.get("stock") or 0),
        unit_price=row.get("prix_ht"),
        extra={k: v for k, v in row.items() if k not in known},
    )
