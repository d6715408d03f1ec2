"""Ingestion ledger — durable record of sources already in the vector store.

The runner checks :meth:`IngestionLedgerBase.exists` before parsing a
source and calls :meth:`IngestionLedgerBase.save` only after that source's
chunks were persisted.  A crash in between leaves the source unrecorded,
so the next run ingests it again (at-least-once per source).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import DateTime, String, create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class IngestionRecord(Base):
    """One ingested source.  Written once, never updated."""

    __tablename__ = "ingestion_history"

    source_id: Mapped[str] = mapped_column(String(512), primary_key=True)
    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"IngestionRecord(source_id={self.source_id!r}, ingested_at={self.ingested_at!r})"


class IngestionLedgerBase(ABC):
    """Backend-agnostic ledger interface."""

    @abstractmethod
    def exists(self, source_id: str) -> bool:
        """Return ``True`` when *source_id* has already been ingested."""
        ...

    @abstractmethod
    def save(self, source_id: str, ingested_at: datetime | None = None) -> None:
        """Record *source_id* as ingested.  A second save for the same id is a no-op."""
        ...


class SqlIngestionLedger(IngestionLedgerBase):
    """SQLAlchemy-backed ledger (SQLite by default, any SQLAlchemy URL works).

    Parameters
    ----------
    database_url:
        SQLAlchemy URL.  Defaults to ``settings.ledger_database_url``.
    engine:
        Pre-built engine; takes precedence over *database_url*.
    """

    def __init__(self, database_url: str | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            if database_url is None:
                from sanctions_rag.config import settings

                database_url = settings.ledger_database_url
            _ensure_sqlite_dir(database_url)
            engine = create_engine(database_url, pool_pre_ping=True)
        self._engine = engine
        Base.metadata.create_all(engine)
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def exists(self, source_id: str) -> bool:
        with self._session_factory() as session:
            return session.get(IngestionRecord, source_id) is not None

    def save(self, source_id: str, ingested_at: datetime | None = None) -> None:
        record = IngestionRecord(
            source_id=source_id,
            ingested_at=ingested_at or datetime.now(timezone.utc),
        )
        with self._session_factory() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.warning("Source %s was already recorded in the ledger", source_id)

    def get(self, source_id: str) -> IngestionRecord | None:
        with self._session_factory() as session:
            return session.get(IngestionRecord, source_id)

    def records(self) -> list[IngestionRecord]:
        """All records, oldest first."""
        with self._session_factory() as session:
            stmt = select(IngestionRecord).order_by(IngestionRecord.ingested_at, IngestionRecord.source_id)
            return list(session.scalars(stmt))


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
