"""Database handle with explicit lifecycle."""
from __future__ import annotations

import logging
from typing import Any, Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns one engine (connection pool) and hands out sessions.

    The handle is created by the caller and passed to ``create_app``; nothing
    in the package keeps a module-level engine.
    """

    def __init__(self, url: str, **engine_kwargs: Any):
        self.url = url
        self._engine_kwargs = engine_kwargs
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def _default_engine_kwargs(self) -> dict[str, Any]:
        if self.url.startswith("sqlite"):
            return {"connect_args": {"check_same_thread": False}}
        return {
            "pool_pre_ping": True,
            "pool_size": settings.DATABASE_POOL_SIZE,
            "max_overflow": settings.DATABASE_MAX_OVERFLOW,
            "pool_recycle": 3600,
        }

    def open(self) -> "Database":
        if self._engine is not None:
            return self
        kwargs = self._default_engine_kwargs()
        kwargs.update(self._engine_kwargs)
        self._engine = create_engine(self.url, future=True, **kwargs)
        # Fresh Session per request; never share sessions across requests.
        self._session_factory = sessionmaker(bind=self._engine, autoflush=False, autocommit=False, future=True)
        logger.info("Database pool opened")
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database pool closed")

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory()

    def create_all(self) -> None:
        """Create tables directly from metadata (tests and local bootstrap)."""
        from . import models  # noqa: F401  (registers tables on Base.metadata)

        Base.metadata.create_all(bind=self.engine)


def get_db(request: Request) -> Iterator[Session]:
    """Yield a session bound to the application's database handle."""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
