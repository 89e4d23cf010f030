from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cart_service.exceptions import TransportError


@contextmanager
def store_write(session: Session) -> Iterator[Session]:
    """
    Run one store write on `session` and commit it.

    Any SQLAlchemy failure rolls the session back and is re-raised as
    TransportError so callers never see a half-applied write.
    Usage:
        with store_write(db):
            ... DB work ...
    """
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise TransportError(f"Cart store write failed: {e}") from e


@contextmanager
def store_read(session: Session) -> Iterator[Session]:
    try:
        yield session
    except SQLAlchemyError as e:
        session.rollback()
        raise TransportError(f"Cart store read failed: {e}") from e
