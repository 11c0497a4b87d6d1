"""Database connection and session management."""

from collections.abc import Generator
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlmodel import Session, SQLModel, create_engine

from pysitemapper.config import settings

# Create database engine with SQLite-specific settings
connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False  # Allow multi-threaded access

engine = create_engine(
    settings.database_url,
    echo=settings.enable_debug,  # Log SQL queries in debug mode
    connect_args=connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """
    Get a database session.

    Yields:
        Session: SQLModel database session

    Example:
        >>> session = next(get_session())
        >>> posts = session.exec(select(Post)).all()
    """
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create the data directory (SQLite) and all tables."""
    from pysitemapper.models import (  # noqa: F401
        Author,
        Post,
        PostTermLink,
        SitemapCacheEntry,
        Term,
    )

    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    SQLModel.metadata.create_all(engine)
