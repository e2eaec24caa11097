"""Database engine, session factory and declarative base."""

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from findingsync.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all findingsync models."""


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works under pysqlite."""

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(connection):
        connection.exec_driver_sql("BEGIN")


def create_db_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """Create an engine for the configured database.

    In-memory SQLite is pinned to a single shared connection so that worker
    threads see the same database.
    """
    settings = get_settings()
    url = database_url or settings.database_url
    echo = settings.database_echo if echo is None else echo

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        _enable_sqlite_savepoints(engine)
        return engine

    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to ``engine``."""
    return sessionmaker(engine, class_=Session, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables."""
    # Import models so they register on the metadata
    import findingsync.models  # noqa: F401

    Base.metadata.create_all(engine)
