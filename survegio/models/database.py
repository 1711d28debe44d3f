"""Engine, session factory and declarative base for the survey store.

The store is PostgreSQL in deployment and SQLite in tests and local runs.
SQLite needs foreign keys switched on per connection so the assignment
junctions cascade and reject dangling survey ids the way PostgreSQL does.
"""

from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from survegio.config import get_settings


class Base(DeclarativeBase):
    """Base class for the survey, reference and response tables."""
    pass


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def enforce_sqlite_foreign_keys(engine: Engine) -> Engine:
    """Turn on ``PRAGMA foreign_keys`` for every new SQLite connection.

    Args:
        engine: Engine bound to a SQLite database

    Returns:
        The same engine, for chaining
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


settings = get_settings()

engine_kwargs = {
    "pool_pre_ping": True,
    "echo": settings.log_level == "DEBUG",
}

if is_sqlite_url(settings.database_url):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_size"] = settings.database_pool_size
    engine_kwargs["max_overflow"] = settings.database_max_overflow

engine = create_engine(settings.database_url, **engine_kwargs)

if is_sqlite_url(settings.database_url):
    enforce_sqlite_foreign_keys(engine)

# Reports read relations after the assignment write commits
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for the route dependencies.

    Yields:
        Session: SQLAlchemy session, closed when the request finishes
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
