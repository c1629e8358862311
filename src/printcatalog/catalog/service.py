"""Per-kind wiring of the registry, repository, adapter and cascade."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..config import AppConfig, get_config
from ..db.models import create_schema, create_session_factory, get_engine
from ..errors import (
    AssetRemovalError,
    AssetUploadError,
    CatalogError,
    EntrySaveError,
    ValidationError,
)
from ..storage.object_store import ObjectStore
from .assets import AssetStoreAdapter
from .cascade import CascadeResult, DeletionCascade
from .categories import CategoryRegistry
from .models import (
    CATALOG_KINDS,
    UNCATEGORIZED,
    Asset,
    AssetRole,
    CatalogEntry,
    CatalogPage,
    Category,
    EntryFields,
    FilePayload,
)
from .repository import DEFAULT_PAGE_SIZE, CatalogEntryRepository, StoredThumbnail

__all__ = ["CatalogBackend", "build_backends"]

logger = logging.getLogger(__name__)


class CatalogBackend:
    """Everything the endpoints need to serve one catalog kind.

    The backend satisfies the same entry and asset gateway protocols as the
    HTTP client, so the draft controller can run against it in-process.
    """

    def __init__(
        self,
        kind: str,
        session_factory: sessionmaker[Session],
        store: ObjectStore,
        bucket: str,
    ) -> None:
        if kind not in CATALOG_KINDS:
            raise ValueError(f"Unknown catalog kind: {kind!r}")
        self.kind = kind
        self.bucket = bucket
        self.store = store
        self.categories = CategoryRegistry(kind, session_factory)
        self.repository = CatalogEntryRepository(kind, session_factory)
        self.assets = AssetStoreAdapter(self.repository, store, bucket)
        self.cascade = DeletionCascade(self.repository, store, bucket)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------
    def list_entries(
        self,
        *,
        category: str | None = None,
        query: str | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        active_only: bool = False,
    ) -> CatalogPage:
        try:
            return self.repository.list_entries(
                category=category,
                query=query,
                page=page,
                page_size=page_size,
                active_only=active_only,
            )
        except SQLAlchemyError as exc:
            logger.error("Listing %s entries failed: %s", self.kind, exc)
            raise CatalogError(f"Listing {self.kind} entries failed: {exc}") from exc

    def get_entry(self, entry_id: str) -> CatalogEntry:
        try:
            return self.repository.get_entry(entry_id)
        except SQLAlchemyError as exc:
            logger.error("Loading %s entry %s failed: %s", self.kind, entry_id, exc)
            raise CatalogError(f"Loading {self.kind} entry {entry_id} failed: {exc}") from exc

    def create_entry(self, fields: EntryFields, thumbnail: FilePayload | None) -> CatalogEntry:
        """Create an entry together with its mandatory thumbnail."""

        if not fields.title.strip():
            raise ValidationError("Missing title")
        if thumbnail is None or not thumbnail.data:
            raise ValidationError("Missing thumbnail file")

        fields = self._resolve_category(fields)
        written: list[StoredThumbnail] = []

        def write_thumbnail(entry_id: str) -> StoredThumbnail:
            stored = self.assets.write_blob(entry_id, thumbnail)
            written.append(stored)
            return stored

        try:
            return self.repository.create_entry(fields, write_thumbnail)
        except SQLAlchemyError as exc:
            for stored in written:
                self.assets.discard_blob(stored)
            logger.error("Creating %s entry %r failed: %s", self.kind, fields.title, exc)
            raise EntrySaveError(f"Insert failed: {exc}") from exc

    def update_entry(self, entry_id: str, fields: EntryFields) -> CatalogEntry:
        fields = self._resolve_category(fields)
        try:
            return self.repository.update_entry(entry_id, fields)
        except SQLAlchemyError as exc:
            logger.error("Updating %s entry %s failed: %s", self.kind, entry_id, exc)
            raise EntrySaveError(f"Update failed: {exc}") from exc

    def delete_entry(
        self,
        entry_id: str,
        thumb_storage_path: str | None = None,
        *,
        delete_assets: bool = True,
    ) -> CascadeResult:
        return self.cascade.delete(entry_id, thumb_storage_path, delete_assets=delete_assets)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------
    def upload(
        self,
        owner_id: str,
        payload: FilePayload,
        *,
        role: AssetRole = AssetRole.GALLERY,
        label: str | None = None,
    ) -> Asset:
        try:
            return self.assets.upload(owner_id, payload, role=role, label=label)
        except SQLAlchemyError as exc:
            raise AssetUploadError(f"Uploading {payload.filename} failed: {exc}") from exc

    def replace_thumbnail(self, owner_id: str, payload: FilePayload) -> Asset:
        try:
            return self.assets.replace_thumbnail(owner_id, payload)
        except SQLAlchemyError as exc:
            raise AssetUploadError(f"Replacing thumbnail of {owner_id} failed: {exc}") from exc

    def remove(self, asset_id: str, *, role: AssetRole = AssetRole.GALLERY) -> None:
        try:
            self.assets.remove(asset_id, role=role)
        except SQLAlchemyError as exc:
            raise AssetRemovalError(f"Removing {role.value} {asset_id} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def list_categories(self) -> list[Category]:
        try:
            return self.categories.list_categories()
        except SQLAlchemyError as exc:
            raise CatalogError(f"Loading {self.kind} categories failed: {exc}") from exc

    def create_category(self, label: str) -> Category:
        return self.categories.create(label)

    def delete_category(self, slug: str, reassign_to: str | None = UNCATEGORIZED) -> int:
        return self.categories.delete(slug, reassign_to)

    def _resolve_category(self, fields: EntryFields) -> EntryFields:
        if self.categories.exists(fields.category_id):
            return fields
        logger.warning(
            "Unknown %s category %r; filing entry under %s",
            self.kind,
            fields.category_id,
            UNCATEGORIZED,
        )
        return replace(fields, category_id=UNCATEGORIZED)


def build_backends(
    config: AppConfig | None = None,
    *,
    engine: Engine | None = None,
) -> Mapping[str, CatalogBackend]:
    """Create the schema and return one :class:`CatalogBackend` per kind."""

    config = config or get_config()
    if engine is None:
        if not config.database_url:
            config.data_root.mkdir(parents=True, exist_ok=True)
        engine = get_engine(config.resolved_database_url)
    create_schema(engine)
    session_factory = create_session_factory(engine)
    store = ObjectStore(config.storage_root, public_base_url=config.public_base_url)

    backends = {
        kind: CatalogBackend(kind, session_factory, store, config.bucket_for(kind))
        for kind in CATALOG_KINDS
    }
    for backend in backends.values():
        backend.categories.ensure_sentinel()
    return backends
