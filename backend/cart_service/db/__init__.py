import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from cart_service.config import settings
from cart_service.utils.logging import get_logger

log = get_logger(__name__)

Base = declarative_base()


def make_engine(url: str):
    """
    Build an engine for `url`.

    SQLite connections are shared across threads (the scheduler and the
    request workers use the same pool); an in-memory URL gets a StaticPool so
    every session sees the same database.
    """
    kwargs = {"future": True, "echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(reset: bool = False, bind=None):
    """
    Create the document tables and their indexes.

    With reset=True (or RESET_DB=1 in the environment) existing tables are
    dropped first.
    """
    # register mapped classes on Base.metadata
    import cart_service.models.cart  # noqa: F401

    bind = bind or engine
    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")
    if reset or env_reset:
        log.info("Resetting database")
        Base.metadata.drop_all(bind=bind)
    Base.metadata.create_all(bind=bind)
    log.info("Database initialized")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
