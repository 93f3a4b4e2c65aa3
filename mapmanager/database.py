"""Database setup and session management."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


def _is_sqlite_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite connections are shared across worker threads."""
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory(database_url):
            # One connection, otherwise every checkout sees a fresh empty database
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, echo=echo, future=True, **kwargs)

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to ``engine``."""
    return sessionmaker(engine, class_=Session, expire_on_commit=False)


def init_db(engine: Engine):
    """Initialize database tables."""
    # Register the tables on Base.metadata
    import mapmanager.models  # noqa: F401

    Base.metadata.create_all(engine)
