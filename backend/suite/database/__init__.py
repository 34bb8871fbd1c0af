"""
SQLAlchemy engine, session factory and declarative base for the bookings database.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from suite.core.config import settings

logger = logging.getLogger(__name__)


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    if db_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "future": True}
    # Small pool; idle connections recycled after 5 minutes
    return {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 3,
        "max_overflow": 5,
        "pool_timeout": 5,
        "future": True,
    }


engine: Engine = create_engine(settings.database_url, **_build_engine_kwargs(settings.database_url))

# Services read ORM objects after committing
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield a session, committing when the caller finishes cleanly."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back session after error", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
]
