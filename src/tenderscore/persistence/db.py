"""
Database connection and session management.

Provides database access with connection pooling and session lifecycle
management. Components that touch storage take a ``SessionScope`` so
callers (and tests) can point them at any engine.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, ContextManager, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

DEFAULT_DATABASE_URL = "sqlite:///data/tenderscore.db"

SessionScope = Callable[[], ContextManager[Session]]


# =============================================================================
# Global Engine References
# =============================================================================

_sync_engine: Engine | None = None
_sync_session_factory: sessionmaker[Session] | None = None


# =============================================================================
# SQLite Configuration
# =============================================================================


def _configure_sqlite(engine: Engine) -> None:
    """Configure SQLite for better performance and reliability.
    
    Enables:
    - Foreign key enforcement
    - WAL mode for better concurrency
    - A busy timeout so concurrent workers wait instead of failing
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


# =============================================================================
# Engine Creation
# =============================================================================


def create_db_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> Engine:
    """Create a new engine with settings appropriate to the backend."""
    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
        _configure_sqlite(engine)
        return engine
    
    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=10,
        pool_pre_ping=True,
    )


def get_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> Engine:
    """Get or create the process-wide database engine.
    
    Args:
        url: SQLAlchemy database URL
        echo: Whether to log SQL statements
        pool_size: Connection pool size (ignored for SQLite)
        
    Returns:
        SQLAlchemy Engine instance
    """
    global _sync_engine, _sync_session_factory
    
    if _sync_engine is not None:
        return _sync_engine
    
    _sync_engine = create_db_engine(url, echo=echo, pool_size=pool_size)
    _sync_session_factory = create_session_factory(_sync_engine)
    
    return _sync_engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


# =============================================================================
# Session Management
# =============================================================================


def session_scope(factory: sessionmaker[Session]) -> SessionScope:
    """Build a transactional scope over a session factory.
    
    Each ``with scope() as session:`` block commits on success and rolls
    back on error.
    """
    @contextmanager
    def scope() -> Generator[Session, None, None]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
    
    return scope


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get a database session on the process-wide engine.
    
    Usage:
        with get_session() as session:
            session.execute(...)
    """
    if _sync_session_factory is None:
        get_engine()  # Initialize with defaults
    
    assert _sync_session_factory is not None
    with session_scope(_sync_session_factory)() as session:
        yield session


# =============================================================================
# Database Initialization
# =============================================================================


def init_db(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> None:
    """Initialize the database schema.
    
    Creates all tables if they don't exist. For production use,
    prefer Alembic migrations.
    """
    engine = get_engine(url, echo=echo)
    Base.metadata.create_all(bind=engine)


def drop_db(url: str = DEFAULT_DATABASE_URL) -> None:
    """Drop all database tables.
    
    WARNING: This will delete all data!
    """
    engine = get_engine(url)
    Base.metadata.drop_all(bind=engine)


def dispose_engines() -> None:
    """Dispose of the process-wide engine."""
    global _sync_engine, _sync_session_factory
    
    if _sync_engine is not None:
        _sync_engine.dispose()
        _sync_engine = None
        _sync_session_factory = None


def get_session_scope(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> SessionScope:
    """Session scope bound to the process-wide engine for ``url``."""
    get_engine(url, echo=echo, pool_size=pool_size)
    assert _sync_session_factory is not None
    return session_scope(_sync_session_factory)
