"""Database connection helpers for the creation history."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

_ENGINES: Dict[str, Engine] = {}


def get_engine(database_url: str) -> Engine:
    engine = _ENGINES.get(database_url)
    if engine is None:
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        engine = create_engine(database_url, connect_args=connect_args, echo=False)
        _ENGINES[database_url] = engine
    return engine


def init_db(database_url: str) -> None:
    Base.metadata.create_all(bind=get_engine(database_url))


@contextmanager
def get_session(database_url: str) -> Iterator[Session]:
    """Yield a session on an initialized history database."""
    init_db(database_url)
    session_factory = sessionmaker(autoflush=False, bind=get_engine(database_url))
    db: Session = session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
