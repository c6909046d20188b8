# src/db/database.py

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.logic.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """
    Persistence handle: one engine and session factory, built once at process
    start and passed to whatever needs storage.
    """
    def __init__(self, url: str, echo: bool = False):
        engine_kwargs = {}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite+pysqlite://") or ":memory:" in url:
                # In-memory SQLite only lives as long as its single connection.
                engine_kwargs["poolclass"] = StaticPool
        self.url = url
        self.engine = create_engine(url, echo=echo, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.debug(f"Database handle created for {self.engine.url.render_as_string(hide_password=True)}.")

    @property
    def supports_parallel_writes(self) -> bool:
        # SQLite serializes writers on one file (and shares one connection in memory).
        return self.engine.dialect.name != "sqlite"

    def create_all(self) -> None:
        # Import registers the mapped classes on Base.metadata.
        from src.db import models  # noqa: F401
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        from src.db import models  # noqa: F401
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        One atomic boundary: commits when the block succeeds, rolls back on any error.
        Storage errors surface as PersistenceFailure; ledger errors propagate unchanged.
        """
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Persistence failure, transaction rolled back: {type(e).__name__}: {e}")
            raise PersistenceFailure(f"{type(e).__name__}: {e}") from e
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
