from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
import logging

from app.core.settings import settings
from app.exceptions import PersistenceFailure

logger = logging.getLogger("app.database")

DATABASE_URL = settings.database_url


def _create_engine(url: str):
    if url.startswith("sqlite"):
        # SQLite is only used for local runs; pooling options do not apply
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.sql_debug,
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=settings.db_pool_recycle,  # Recycle connections every hour
        echo=settings.sql_debug,
    )


engine = _create_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


async def check_database_health():
    """Check if database is accessible."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database health check: PASSED")
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check: FAILED - {str(e)}")
        return {"status": "unhealthy", "database": f"error: {str(e)}"}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def try_rollback(db):
    """Roll back the session, returning the rollback error instead of raising it."""
    try:
        db.rollback()
    except SQLAlchemyError as rb_exc:
        return rb_exc
    return None


def commit_or_raise(db, action: str):
    """Commit the session; on failure roll back and raise PersistenceFailure.

    If the rollback fails as well, both errors are reported.
    """
    try:
        db.commit()
    except SQLAlchemyError as exc:
        rollback_error = try_rollback(db)
        logger.error("Failed to %s: %s (rollback error: %s)", action, exc, rollback_error)
        raise PersistenceFailure(f"Failed to {action}", original=exc, rollback_error=rollback_error) from exc
