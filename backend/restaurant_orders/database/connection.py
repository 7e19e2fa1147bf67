"""
Database connection management with a SQLAlchemy engine.

This module provides the engine, session factory and the per-request session
dependency for FastAPI. Each request gets one Session; it is committed when the
endpoint returns normally and rolled back on any exception.
"""

from typing import Any, Dict, Generator, Optional

from sqlalchemy import Engine, create_engine as sa_create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from restaurant_orders.core.config import get_settings
from restaurant_orders.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def _normalize_database_url(url: str) -> str:
    """
    Select the psycopg driver for plain PostgreSQL URLs.

    Args:
        url: Database connection URL

    Returns:
        URL with an explicit driver
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def create_engine() -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    SQLite URLs (used by tests and local runs) share one connection across
    threads; PostgreSQL uses a bounded queue pool.

    Returns:
        Configured SQLAlchemy engine
    """
    settings = get_settings()
    database_url = _normalize_database_url(settings.database_url)

    kwargs: Dict[str, Any] = {"echo": settings.debug}
    if settings.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    elif settings.environment == "test":
        kwargs["poolclass"] = NullPool
    else:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={"application_name": settings.app_name},
        )

    engine = sa_create_engine(database_url, **kwargs)

    logger.info(
        "Database engine created",
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        environment=settings.environment,
    )

    return engine


def get_engine() -> Engine:
    """
    Get or create the global database engine.

    Raises:
        RuntimeError: If engine initialization fails
    """
    global _engine

    if _engine is None:
        try:
            _engine = create_engine()
        except Exception as e:
            logger.error(
                "Failed to create database engine",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RuntimeError(f"Database engine initialization failed: {e}") from e

    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database session factory created")

    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database session injection.

    Yields:
        Database session for request handling

    Example:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.scalars(select(Item)).all()
    """
    session = get_session_factory()()
    try:
        logger.debug("Database session created")
        yield session
        session.commit()
        logger.debug("Database session committed")
    except Exception as e:
        session.rollback()
        logger.error(
            "Database session rolled back",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        session.close()


def check_database_health() -> bool:
    """
    Check database connectivity.

    Returns:
        True if a trivial query succeeds, False otherwise
    """
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, RuntimeError) as e:
        logger.error(
            "Database health check failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return False


def close_database_connections() -> None:
    """Dispose of the engine pool on shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None
