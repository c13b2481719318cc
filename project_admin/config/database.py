"""
Database configuration and session management.

This module provides the SQLAlchemy declarative base, a `Database` wrapper that
owns the engine and session factory for one application instance, the startup
connect routine, and the `get_db` dependency used by route handlers.

Configuration:
- DATABASE_URL: SQLAlchemy connection string (validated in `Settings`)
- SQLite URLs (used by tests) get `check_same_thread=False`; in-memory SQLite
  uses a single shared connection so every session sees the same tables
"""
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import Column, DateTime, Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from project_admin.utils.logger import get_logger

logger = get_logger(__name__)

# Base class for models (must be created before models are imported)
Base = declarative_base()


class TimestampMixin:
    """
    Mixin class for common timestamp fields.

    Usage:
        class MyModel(Base, TimestampMixin):
            ...
    """

    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now(), nullable=False
    )


def create_database_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create SQLAlchemy engine for the given URL.

    Args:
        database_url: Database connection URL
        echo: Enable SQL query logging (default: False)

    Returns:
        Configured SQLAlchemy Engine instance
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(url, echo=echo, pool_pre_ping=True)


class Database:
    """Engine and session factory owned by one application instance."""

    def __init__(self, database_url: str, engine: Optional[Engine] = None):
        self.url = database_url
        self.engine = engine or create_database_engine(database_url)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def connect(self) -> None:
        """
        Verify connectivity and create missing tables.

        Blocking; the startup sequence runs it in a worker thread.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the database cannot be reached
        """
        # Models must be registered with Base.metadata before create_all
        import project_admin.models  # noqa: F401

        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database connected", backend=self.engine.url.get_backend_name())

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Get database session for dependency injection.

    The session comes from the `Database` attached to the running application
    and is closed after the request.

    Example:
        @router.get("/items")
        async def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
