"""
SQLAlchemy 2.0 Database Configuration

Simple, standard SQLAlchemy setup for the ledger tables.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from planledger.settings import get_settings

# ==========================================
# SQLAlchemy 2.0 Declarative Base
# ==========================================


class Base(DeclarativeBase):
    """Base class for all database models using SQLAlchemy 2.0 declarative mapping."""

    pass


class TimestampMixin:
    """Adds created_at and updated_at wall-clock timestamps to models.

    These are bookkeeping only; ledger arithmetic uses logical ticks.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


# ==========================================
# Engine and Session Management
# ==========================================

_engine: Engine | None = None


def build_engine(url: str | None = None, echo: bool | None = None) -> Engine:
    """Create an engine for ``url`` (defaults to settings).

    In-memory SQLite gets a StaticPool so every session sees the same database.
    """
    database = get_settings().database
    url = url or database.url
    echo = database.echo if echo is None else echo

    kwargs: dict[str, Any] = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    """Get or create the process-wide engine."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def make_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Build a session factory bound to ``engine``."""
    return sessionmaker(
        autoflush=False,
        bind=engine or get_engine(),
        class_=Session,
        expire_on_commit=False,
    )


# ==========================================
# Database Initialization
# ==========================================


def create_all_tables(engine: Engine | None = None) -> None:
    """Create all tables in the database."""
    import planledger.billing.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=engine or get_engine())


def drop_all_tables(engine: Engine | None = None) -> None:
    """Drop all tables from the database. Use with caution!"""
    Base.metadata.drop_all(bind=engine or get_engine())


__all__ = [
    "Base",
    "TimestampMixin",
    "build_engine",
    "get_engine",
    "make_session_factory",
    "create_all_tables",
    "drop_all_tables",
]
