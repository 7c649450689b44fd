"""Helpers and Flask application integration."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Generator

from flask import Flask
from pytz import UTC
from sqlalchemy import text
from sqlalchemy.orm.session import Session

from .models import db

logger = logging.getLogger(__name__)


def now() -> int:
    """Get the current epoch/unix time."""
    return epoch(datetime.now(tz=UTC))


def epoch(t: datetime) -> int:
    """Convert a :class:`.datetime` to UNIX time."""
    delta = t - datetime.fromtimestamp(0, tz=UTC)
    return int(round((delta).total_seconds()))


def from_epoch(t: int) -> datetime:
    """Get a :class:`datetime` from an UNIX timestamp."""
    return datetime.fromtimestamp(t, tz=UTC)


@contextmanager
def transaction(session: Session) -> Generator[Session, None, None]:
    """Context manager for database transaction."""
    try:
        yield session
        # The caller may have explicitly committed already, in order to
        # implement exception handling logic. We only want to commit here if
        # there is anything remaining that is not flushed.
        if session.new or session.dirty or session.deleted:
            session.commit()
    except Exception as e:
        logger.error('Commit failed, rolling back: %s', str(e))
        session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Attach the database to the application."""
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def is_available(session: Session) -> bool:
    """Check our connection to the database."""
    try:
        session.execute(text('SELECT 1'))
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
