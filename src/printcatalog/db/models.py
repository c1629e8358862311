"""Database schema definitions for the printcatalog backend.

This module centralises the SQLAlchemy declarative mappings used by the
backend.  The schema models the catalog concepts:

* :class:`CatalogEntryRow` – a design or bundle shown in the storefront,
  including the locator of its thumbnail.
* :class:`EntryImageRow` – an ordered gallery image owned by an entry.
* :class:`EntryFileRow` – an ordered downloadable file owned by an entry.
* :class:`CategoryRow` – a labelled category, unique per kind by slug.

Alongside the ORM mappings the module provides helpers for instantiating an
engine, constructing sessions, and creating the schema.  Tests and runtime
code rely on ``get_engine``/``create_session_factory`` to bootstrap the
database without duplicating configuration boilerplate.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"
"""Connection string used for in-memory testing."""


def _utcnow() -> datetime:
    """Return an aware UTC timestamp used by default for temporal columns."""

    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models within the catalog schema."""


metadata = Base.metadata
"""Exposed metadata object for table management."""


def _configure_sqlite_pragma(engine: Engine) -> None:
    """Ensure SQLite engines enforce foreign key constraints."""

    if engine.url.get_backend_name() != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()


def get_engine(url: str | None = None, **kwargs: Any) -> Engine:
    """Return a configured SQLAlchemy engine.

    Parameters
    ----------
    url:
        Optional database URL. When omitted a private in-memory SQLite
        database is created.
    **kwargs:
        Additional keyword arguments forwarded to :func:`sqlalchemy.create_engine`.
    """

    actual_url = url or DEFAULT_DATABASE_URL
    if actual_url.startswith("sqlite"):
        connect_args = dict(kwargs.pop("connect_args", {}))
        # The API serves requests from worker threads.
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
        if ":memory:" in actual_url:
            kwargs.setdefault("poolclass", StaticPool)

    engine = create_engine(actual_url, **kwargs)
    _configure_sqlite_pragma(engine)
    return engine


def create_session_factory(
    engine: Engine | None = None,
    *,
    expire_on_commit: bool = False,
    autoflush: bool = False,
) -> sessionmaker[Session]:
    """Return a ``sessionmaker`` bound to the supplied engine.

    Objects stay live after commits so repositories can convert rows into
    records after the transaction closes.
    """

    bound_engine = engine or get_engine()
    return sessionmaker(
        bind=bound_engine,
        expire_on_commit=expire_on_commit,
        autoflush=autoflush,
    )


def create_schema(engine: Engine) -> None:
    """Create every catalog table that does not exist yet."""

    Base.metadata.create_all(engine)


class CategoryRow(Base):
    """Labelled category; ``slug`` doubles as the public identifier."""

    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("kind", "slug", name="uq_category_slug_per_kind"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )


class CatalogEntryRow(Base):
    """A design or bundle together with its thumbnail reference."""

    __tablename__ = "catalog_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    blurb: Mapped[str] = mapped_column(Text(), default="", nullable=False)
    price_label: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    category_id: Mapped[str] = mapped_column(
        String(128), index=True, default="uncategorized", nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    thumb_url: Mapped[str | None] = mapped_column(String(1024))
    thumb_storage_path: Mapped[str | None] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    images: Mapped[list[EntryImageRow]] = relationship(
        back_populates="entry",
        passive_deletes=True,
        order_by=lambda: [EntryImageRow.sort_order, EntryImageRow.id],
    )
    files: Mapped[list[EntryFileRow]] = relationship(
        back_populates="entry",
        passive_deletes=True,
        order_by=lambda: [EntryFileRow.sort_order, EntryFileRow.id],
    )


class EntryImageRow(Base):
    """Gallery image linked to a catalog entry."""

    __tablename__ = "entry_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("catalog_entries.id", ondelete="CASCADE"), index=True, nullable=False
    )
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    storage_path: Mapped[str | None] = mapped_column(String(512))
    mime_type: Mapped[str | None] = mapped_column(String(128))
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    entry: Mapped[CatalogEntryRow] = relationship(back_populates="images")


class EntryFileRow(Base):
    """Downloadable file (STL, 3MF, archive...) linked to a catalog entry."""

    __tablename__ = "entry_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("catalog_entries.id", ondelete="CASCADE"), index=True, nullable=False
    )
    label: Mapped[str] = mapped_column(String(255), default="File", nullable=False)
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    storage_path: Mapped[str | None] = mapped_column(String(512))
    mime_type: Mapped[str | None] = mapped_column(String(128))
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    entry: Mapped[CatalogEntryRow] = relationship(back_populates="files")


__all__ = [
    "Base",
    "CatalogEntryRow",
    "CategoryRow",
    "DEFAULT_DATABASE_URL",
    "EntryFileRow",
    "EntryImageRow",
    "create_schema",
    "create_session_factory",
    "get_engine",
    "metadata",
]
