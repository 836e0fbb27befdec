"""
Structured logging for the parts lookup core.

Every record is written as one JSON object. Call sites attach their own
fields with extra={"extra_fields": {...}}; records emitted while a chat turn
is being handled also carry that turn's session id (see session_scope).

Environment:
- LOG_LEVEL: root level, INFO by default
- LOG_DIR: directory for the rotating files, "logs" by default
- LOG_TO_CONSOLE: "true" mirrors warnings and errors to stderr
"""

import json
import logging
import logging.handlers
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

_current_session: ContextVar[str | None] = ContextVar("parts_session_id", default=None)


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        session_id = getattr(record, "session_id", None)
        if session_id:
            payload["session_id"] = session_id

        fields = getattr(record, "extra_fields", None)
        if fields:
            payload.update(fields)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class SessionFilter(logging.Filter):
    """Stamp records with the session id bound to the current task, if any."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = _current_session.get()
        return True


@contextmanager
def session_scope(session_id: str) -> Iterator[None]:
    """
    Bind a session id to every record logged inside the block.

    The binding lives in a context variable, so concurrent turns running as
    separate asyncio tasks do not see each other's id.
    """
    token = _current_session.set(session_id)
    try:
        yield
    finally:
        _current_session.reset(token)


class LoggerConfig:
    LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_TO_CONSOLE = os.getenv("LOG_TO_CONSOLE", "false").lower() == "true"
    MAX_BYTES = 5 * 1024 * 1024
    BACKUP_COUNT = 3

    _initialized = False

    @classmethod
    def _rotating_handler(cls, filename: str, level: int, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            cls.LOG_DIR / filename,
            maxBytes=cls.MAX_BYTES,
            backupCount=cls.BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(SessionFilter())
        return handler

    @classmethod
    def setup_logging(cls) -> None:
        """Configure the root logger once; later calls are no-ops."""
        if cls._initialized:
            return

        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
        root = logging.getLogger()
        root.setLevel(getattr(logging, cls.LOG_LEVEL, logging.INFO))
        root.handlers.clear()

        formatter = JsonFormatter()
        root.addHandler(cls._rotating_handler("parts.log", logging.INFO, formatter))
        root.addHandler(cls._rotating_handler("parts-errors.log", logging.ERROR, formatter))
        if cls.LOG_LEVEL == "DEBUG":
            # scoring and context traces are only written at DEBUG
            root.addHandler(cls._rotating_handler("parts-debug.log", logging.DEBUG, formatter))

        if cls.LOG_TO_CONSOLE:
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(logging.WARNING)
            console.setFormatter(
                logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s", "%Y-%m-%d %H:%M:%S")
            )
            root.addHandler(console)

        cls._initialized = True
        logging.getLogger(__name__).info(
            "Logging configured",
            extra={
                "extra_fields": {
                    "log_level": cls.LOG_LEVEL,
                    "log_dir": str(cls.LOG_DIR),
                    "console": cls.LOG_TO_CONSOLE,
                }
            },
        )


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, configuring the handlers on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Search started", extra={"extra_fields": {"query": "amortisseur avant"}})
    """
    LoggerConfig.setup_logging()
    return logging.getLogger(name)
