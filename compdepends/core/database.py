"""Database engine layer for the computation dependency updater.

Provides a sync engine factory and session factory for the daemon.  The
daemon is a single-threaded batch process, so only sync sessions are used.
Session factories are configured with autoflush=False and
expire_on_commit=False for explicit transaction control.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings


def build_engine(url: str | None = None, echo: bool | None = None) -> Engine:
    """Create a sync engine for *url* (defaults to ``settings.database_url``).

    In-memory SQLite URLs get a StaticPool so every session shares the one
    connection that holds the schema.
    """
    url = url or settings.database_url
    echo = settings.debug if echo is None else echo
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(
        url,
        pool_size=5,
        pool_pre_ping=settings.db_pool_pre_ping,
        echo=echo,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to *engine*."""
    return sessionmaker(
        engine,
        autoflush=False,
        expire_on_commit=False,
    )
