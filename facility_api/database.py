import logging

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import QueuePool, StaticPool

from facility_api.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    if settings.is_sqlite:
        # one shared connection so an in-memory database survives across sessions and threads
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {
        "poolclass":     QueuePool,
        "pool_size":     settings.DATABASE_POOL_SIZE,
        "max_overflow":  settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout":  settings.DATABASE_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, **_engine_options())

# expire_on_commit off: services serialize records right after committing them
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def get_db():
    """
    One session per HTTP request. Anything raised inside the route rolls the
    session back, so a rejected lifecycle change never half-applies.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False
    return True
