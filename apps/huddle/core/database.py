"""Database engine and session helpers (SQLModel-compatible)."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from huddle.core.exceptions import ConfigurationError


def normalize_db_url(url: str) -> str:
    """Normalize database URL for SQLAlchemy.

    - Force explicit psycopg driver for Postgres URLs
    - Leave other schemes untouched
    """
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://") and "+" not in url.split(":", 1)[0]:
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite connections are shared across the event loop threads."""
    db_url = normalize_db_url(url)
    kwargs: dict = {"future": True}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if db_url in {"sqlite://", "sqlite:///:memory:"}:
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    try:
        return create_engine(db_url, **kwargs)
    except ModuleNotFoundError as exc:  # pragma: no cover - runtime dependency hint
        if db_url.startswith("postgres"):
            raise ConfigurationError(
                'PostgreSQL driver missing. Run: pip install "psycopg[binary]" '
                "or use SQLite locally: DATABASE_URL=sqlite:///apps/huddle/huddle.db",
            ) from exc
        raise


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        class_=Session,
    )


def init_db(engine: Engine) -> None:
    """Create tables (and the notification uniqueness index) if missing."""
    # Register table metadata before create_all.
    import huddle.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Yield a session bound to one request lifecycle."""
    session = factory()
    try:
        yield session
    finally:
        session.close()


__all__ = ["build_engine", "init_db", "make_session_factory", "normalize_db_url", "session_scope"]
