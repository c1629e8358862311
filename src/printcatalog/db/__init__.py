"""Database bootstrap helpers and ORM models for the printcatalog backend."""

from .models import (
    DEFAULT_DATABASE_URL,
    Base,
    CatalogEntryRow,
    CategoryRow,
    EntryFileRow,
    EntryImageRow,
    create_schema,
    create_session_factory,
    get_engine,
    metadata,
)

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
