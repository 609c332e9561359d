"""Database engine, sessions and the declarative base for account and folder models."""

from collections.abc import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Make SQLite enforce folder ownership references on every connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, echo: bool = False, **engine_options) -> Engine:
    """Create an engine for ``url``. SQLite connections may be shared across request threads."""
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        **engine_options,
    )
    enable_sqlite_foreign_keys(engine)
    return engine


settings = get_settings()
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    """Base class for User and Folder."""


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request. Services commit or roll back themselves."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
