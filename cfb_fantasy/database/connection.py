"""Database connection and session management using SQLAlchemy.

This module builds engines and session factories. Nothing here holds a
process-wide connection: the CLI and API build an engine from settings at
startup and pass sessions explicitly into the scoring engine.

Key Concepts for Beginners:

Database Engine: The core interface to the database - the "connection
factory" that manages the actual database connections.

Session: A workspace for ORM operations. All queries, inserts and updates of
a scoring run happen within one session.

SAVEPOINTs: The scoring engine writes each unit of work (one school-week,
one team-week, ...) inside ``session.begin_nested()`` so a failing unit is
rolled back without losing the rest of the batch. SQLite's Python driver
needs a small event recipe for SAVEPOINTs to behave; build_engine applies it.

Session Patterns Provided:
1. session_scope(): context manager with automatic commit/rollback
2. get_db(): FastAPI dependency injection pattern
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def build_engine(database_url: str, echo: bool = False, pool_size: int = 5) -> Engine:
    """Create a database engine for the given URL.

    SQLite engines get:
    - check_same_thread=False so the FastAPI threadpool can share them
    - StaticPool for in-memory databases (one shared connection, used by tests)
    - the pysqlite SAVEPOINT recipe: the driver's own transaction handling is
      disabled and SQLAlchemy emits BEGIN itself
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    return create_engine(
        database_url,
        echo=echo,  # Log all SQL queries (useful for debugging)
        pool_size=pool_size,  # Number of connections to maintain in pool
        pool_pre_ping=True,  # Test connections before use (handles disconnects)
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to an engine.

    autocommit=False: explicit control over transactions
    autoflush=False: no surprise database hits in the middle of a calculation
    expire_on_commit=False: read models stay usable after the run commits
    """
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    """Provide a session with automatic commit on success and rollback on error.

    Usage:
        with session_scope(factory) as session:
            ScoringPipeline(session, rules).run(request)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()  # Undo changes if error occurs
        raise  # Re-raise the exception for caller to handle
    finally:
        session.close()


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions.

    The application stores its session factory on ``app.state`` at startup;
    this dependency only ensures cleanup. Route handlers that write must call
    db.commit() themselves.
    """
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
