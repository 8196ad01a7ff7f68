from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from marketplace.core.config import settings
import os
import logging
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

if os.getenv("PYTEST_RUN") == "1":
    SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
else:
    SQLALCHEMY_DATABASE_URL = settings.SQLALCHEMY_DATABASE_URL

is_sqlite = SQLALCHEMY_DATABASE_URL.startswith("sqlite")

pool_kwargs = {
    # Avoid stale idle connections causing first-hit failures after inactivity
    "pool_pre_ping": True,
}
if is_sqlite:
    connect_args = {"check_same_thread": False, "timeout": 15}
    if SQLALCHEMY_DATABASE_URL == "sqlite:///:memory:":
        # One shared connection so every session sees the same in-memory schema
        pool_kwargs["poolclass"] = StaticPool
else:
    connect_args = {}
    pool_kwargs.update({
        "pool_size": int(os.getenv("DB_POOL_SIZE") or 6),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW") or 6),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE") or 300),
    })

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=connect_args,
    **pool_kwargs,
)


def enable_sqlite_foreign_keys(bind) -> None:
    """SQLite ignores FK constraints unless asked per connection."""

    @event.listens_for(bind, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()


if is_sqlite:
    enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a block of writes as one unit of work.

    Everything flushed inside the block is committed together when it exits
    normally. Any exception rolls the whole unit back and is re-raised, so a
    caller never observes half of a multi-row change.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
