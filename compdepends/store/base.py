"""Store facade: engine, session factory and unit-of-work transactions.

Every DAO in ``compdepends.store`` operates on a caller-owned Session so
that one unit of work (e.g. deleting a computation's edges and inserting
its new ones) can span several DAOs and commit atomically::

    with store.transaction() as session:
        CompDependsDAO(session).delete_for_computations([comp_id])
        CompDependsDAO(session).insert_edges(edges)

Any SQLAlchemy error rolls the unit back and is re-raised as DbIoError.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from compdepends.core.database import build_engine, build_session_factory
from compdepends.core.exceptions import DbIoError
from compdepends.core.models import Base
from compdepends.core.utils.logging_config import get_logger

logger = get_logger("store")


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TsdbStore:
    """Owns the engine and hands out sessions and transactions.

    Args:
        url: SQLAlchemy URL; defaults to ``settings.database_url``.
        engine: Pre-built engine (takes precedence over *url*).
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None) -> None:
        self.engine = engine if engine is not None else build_engine(url)
        self.session_factory = build_session_factory(self.engine)

    def session(self) -> Session:
        """Return a new session owned by the caller."""
        return self.session_factory()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session; commit on success, roll back on any error."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise DbIoError(f"Store transaction failed: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def is_connected(self) -> bool:
        """Return True if the store answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("store_unreachable", error=str(exc))
            return False

    def create_schema(self) -> None:
        """Create every table from the ORM metadata (tests and local dev)."""
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        """Release all pooled connections."""
        self.engine.dispose()
