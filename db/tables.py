"""
Reflection of the existing catalog and chat tables.

This module does NOT create tables; they must already exist.
"""

import os

from sqlalchemy import Engine, MetaData, Table

from utils.logger import get_logger

logger = get_logger(__name__)

DB_SCHEMA = os.getenv("DB_SCHEMA") or None

TABLE_NAMES = [
    "pieces_rechange",
    "chat_messages",
]


class TableRegistry:
    """Lazily reflected tables bound to one engine."""

    def __init__(self, engine: Engine, schema: str | None = DB_SCHEMA):
        self._engine = engine
        self._schema = schema
        self.metadata = MetaData()
        self._cache: dict[str, Table] = {}

    def get(self, name: str) -> Table:
        """
        Get a reflected table.

        Raises:
            ValueError: If table name is not recognized
            sqlalchemy.exc.NoSuchTableError: If the table is missing
        """
        if name not in TABLE_NAMES:
            raise ValueError(f"Unknown table name: {name}. Available tables: {', '.join(TABLE_NAMES)}")

        if name not in self._cache:
            logger.debug(f"Reflecting table: {name} from schema: {self._schema}")
            try:
                self._cache[name] = Table(name, self.metadata, autoload_with=self._engine, schema=self._schema)
            except Exception:
                logger.error(f"Failed to reflect table {name}. Ensure DATABASE_URL is correct and the table exists.")
                raise
        return self._cache[name]
