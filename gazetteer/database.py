"""
Database connection and session management.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from gazetteer.models import Base


def _ensure_sqlite_directory(url: str):
    """Create the parent directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


def make_session_factory(url: str, echo: bool = False) -> sessionmaker:
    """Build an engine and session factory for an arbitrary database URL."""
    _ensure_sqlite_directory(url)
    bind = create_engine(url, echo=echo, future=True)
    Base.metadata.create_all(bind=bind)
    return sessionmaker(bind=bind, autoflush=False, autocommit=False)

