"""Database initialization helpers.

Used during initial setup, by the test suite, and by the ``init-db`` CLI
command.

- create_database(): Initialize schema from SQLAlchemy models (idempotent)
- drop_database(): Remove all tables (destructive)
- reset_database(): drop + create
- ensure_season(): get or create the Season row for a competition year
"""

import logging
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .models import Base, Season

logger = logging.getLogger(__name__)


def create_database(engine: Engine):
    """Create all tables; safe to run multiple times.

    For file-based SQLite databases the parent directory is created first,
    which prevents "unable to open database file" errors on a fresh checkout.
    """
    try:
        url = engine.url
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")

    except Exception:
        logger.exception("Failed to create database")
        raise


def drop_database(engine: Engine):
    """Drop all database tables - DESTRUCTIVE OPERATION."""
    try:
        Base.metadata.drop_all(bind=engine)
        logger.info("Database tables dropped successfully")

    except Exception:
        logger.exception("Failed to drop database")
        raise


def reset_database(engine: Engine):
    """Reset database by dropping and recreating all tables."""
    logger.info("Resetting database...")
    drop_database(engine)
    create_database(engine)
    logger.info("Database reset complete")


def ensure_season(session: Session, year: int, bracket_format: str) -> Season:
    """Return the season for ``year``, creating it with ``bracket_format`` if missing.

    An existing season keeps its stored format; seasons are immutable once
    created apart from deliberate bracket-format corrections.
    """
    season = session.query(Season).filter_by(year=year).first()
    if season is None:
        season = Season(year=year, bracket_format=bracket_format)
        session.add(season)
        session.flush()
        logger.info(f"Created season {year} with bracket format {bracket_format}")
    return season
