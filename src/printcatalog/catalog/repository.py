"""Repository wrapping relational access for catalog entries and child rows."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import CatalogEntryRow, EntryFileRow, EntryImageRow
from ..errors import EntryNotFoundError, ValidationError
from .models import (
    UNCATEGORIZED,
    Asset,
    AssetRole,
    CatalogEntry,
    CatalogPage,
    EntryFields,
    RemoteRef,
)

__all__ = [
    "CatalogEntryRepository",
    "ChildLocation",
    "DEFAULT_PAGE_SIZE",
    "IMAGE_ID_PREFIX",
    "FILE_ID_PREFIX",
    "MAX_PAGE_SIZE",
    "StoredThumbnail",
]

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 48

IMAGE_ID_PREFIX = "image-"
FILE_ID_PREFIX = "file-"


@dataclass(frozen=True, slots=True)
class StoredThumbnail:
    """Locator pair produced when a thumbnail blob has been written."""

    url: str
    storage_path: str | None


@dataclass(frozen=True, slots=True)
class ChildLocation:
    """Where the bytes of a gallery image or file row live."""

    role: AssetRole
    url: str | None
    storage_path: str | None


ThumbnailWriter = Callable[[str], StoredThumbnail]
"""Callback receiving the freshly issued entry id and storing the thumbnail."""


class CatalogEntryRepository:
    """Provide CRUD operations for the catalog entries of one kind."""

    def __init__(self, kind: str, session_factory: sessionmaker[Session]) -> None:
        self._kind = kind
        self._session_factory = session_factory

    @property
    def kind(self) -> str:
        return self._kind

    # ------------------------------------------------------------------
    # Entry queries
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
        """Return one page of entry summaries (counts, no asset lists)."""

        page = max(1, int(page))
        page_size = min(MAX_PAGE_SIZE, max(1, int(page_size)))

        conditions: list[Any] = [CatalogEntryRow.kind == self._kind]
        if active_only:
            conditions.append(CatalogEntryRow.is_active.is_(True))
        if category and category != "all":
            conditions.append(CatalogEntryRow.category_id == category)
        needle = (query or "").strip().lower()
        if needle:
            pattern = f"%{needle}%"
            conditions.append(
                or_(
                    func.lower(CatalogEntryRow.title).like(pattern),
                    func.lower(CatalogEntryRow.blurb).like(pattern),
                )
            )

        image_counts = (
            select(EntryImageRow.entry_id, func.count(EntryImageRow.id).label("n"))
            .group_by(EntryImageRow.entry_id)
            .subquery()
        )
        file_counts = (
            select(EntryFileRow.entry_id, func.count(EntryFileRow.id).label("n"))
            .group_by(EntryFileRow.entry_id)
            .subquery()
        )

        with self._session_factory() as session:
            total = session.scalar(select(func.count(CatalogEntryRow.id)).where(*conditions)) or 0
            rows = session.execute(
                select(
                    CatalogEntryRow,
                    func.coalesce(image_counts.c.n, 0),
                    func.coalesce(file_counts.c.n, 0),
                )
                .outerjoin(image_counts, image_counts.c.entry_id == CatalogEntryRow.id)
                .outerjoin(file_counts, file_counts.c.entry_id == CatalogEntryRow.id)
                .where(*conditions)
                .order_by(CatalogEntryRow.sort_order, CatalogEntryRow.created_at, CatalogEntryRow.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
            items = tuple(
                self._row_to_record(row, image_count=int(images), file_count=int(files))
                for row, images, files in rows
            )
        return CatalogPage(items=items, total=int(total))

    def find_entry(self, entry_id: str) -> CatalogEntry | None:
        """Return the full entry (gallery and files included) or ``None``."""

        with self._session_factory() as session:
            row = self._fetch_row(session, entry_id)
            if row is None:
                return None
            return self._row_to_record(row, include_assets=True)

    def get_entry(self, entry_id: str) -> CatalogEntry:
        entry = self.find_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"{self._kind} entry {entry_id} does not exist")
        return entry

    def exists(self, entry_id: str) -> bool:
        with self._session_factory() as session:
            return self._fetch_row(session, entry_id) is not None

    # ------------------------------------------------------------------
    # Entry mutations
    # ------------------------------------------------------------------
    def create_entry(self, fields: EntryFields, write_thumbnail: ThumbnailWriter) -> CatalogEntry:
        """Insert a new entry and attach its thumbnail in one transaction.

        *write_thumbnail* is called with the new entry id after the row has
        been flushed; if it raises, the insert is rolled back.
        """

        title = fields.title.strip()
        if not title:
            raise ValidationError("Missing title")

        with self._session_factory() as session, session.begin():
            row = CatalogEntryRow(
                kind=self._kind,
                title=title,
                blurb=fields.blurb,
                price_label=fields.price_label,
                category_id=fields.category_id or UNCATEGORIZED,
                sort_order=fields.sort_order,
                is_active=fields.active,
            )
            session.add(row)
            session.flush()
            stored = write_thumbnail(str(row.id))
            row.thumb_url = stored.url
            row.thumb_storage_path = stored.storage_path
            session.flush()
            record = self._row_to_record(row, include_assets=True)

        logger.info("Created %s entry %s (%s)", self._kind, record.id, record.title)
        return record

    def update_entry(self, entry_id: str, fields: EntryFields) -> CatalogEntry:
        """Overwrite the core columns of *entry_id*."""

        title = fields.title.strip()
        if not title:
            raise ValidationError("Missing title")

        with self._session_factory() as session, session.begin():
            row = self._require_row(session, entry_id)
            row.title = title
            row.blurb = fields.blurb
            row.price_label = fields.price_label
            row.category_id = fields.category_id or UNCATEGORIZED
            row.sort_order = fields.sort_order
            row.is_active = fields.active
            session.flush()
            return self._row_to_record(row, include_assets=True)

    def set_thumbnail(self, entry_id: str, stored: StoredThumbnail) -> StoredThumbnail | None:
        """Point *entry_id* at a new thumbnail and return the previous one."""

        with self._session_factory() as session, session.begin():
            row = self._require_row(session, entry_id)
            previous = None
            if row.thumb_url or row.thumb_storage_path:
                previous = StoredThumbnail(url=row.thumb_url or "", storage_path=row.thumb_storage_path)
            row.thumb_url = stored.url
            row.thumb_storage_path = stored.storage_path
        return previous

    # ------------------------------------------------------------------
    # Child rows
    # ------------------------------------------------------------------
    def add_image(
        self,
        entry_id: str,
        *,
        url: str,
        storage_path: str | None,
        mime: str | None = None,
    ) -> Asset:
        with self._session_factory() as session, session.begin():
            row = self._require_row(session, entry_id)
            position = self._next_child_order(session, EntryImageRow, row.id)
            image = EntryImageRow(
                entry_id=row.id,
                image_url=url,
                storage_path=storage_path,
                mime_type=mime,
                sort_order=position,
            )
            session.add(image)
            session.flush()
            return self._image_to_asset(image)

    def add_file(
        self,
        entry_id: str,
        *,
        url: str,
        storage_path: str | None,
        label: str,
        mime: str | None = None,
    ) -> Asset:
        with self._session_factory() as session, session.begin():
            row = self._require_row(session, entry_id)
            position = self._next_child_order(session, EntryFileRow, row.id)
            stored = EntryFileRow(
                entry_id=row.id,
                label=label,
                file_url=url,
                storage_path=storage_path,
                mime_type=mime,
                sort_order=position,
            )
            session.add(stored)
            session.flush()
            return self._file_to_asset(stored)

    def find_child(self, asset_id: str, role: AssetRole) -> ChildLocation | None:
        """Return the storage location of a gallery image or file row."""

        model, prefix = self._child_model(role)
        row_id = _parse_child_id(asset_id, prefix)
        if row_id is None:
            return None
        with self._session_factory() as session:
            row = session.get(model, row_id)
            if row is None or row.entry.kind != self._kind:
                return None
            url = row.image_url if role is AssetRole.GALLERY else row.file_url
            return ChildLocation(role=role, url=url, storage_path=row.storage_path)

    def delete_child(self, asset_id: str, role: AssetRole) -> bool:
        """Delete a single child row; an unknown id returns ``False``."""

        model, prefix = self._child_model(role)
        row_id = _parse_child_id(asset_id, prefix)
        if row_id is None:
            return False
        with self._session_factory() as session, session.begin():
            result = session.execute(delete(model).where(model.id == row_id))
            return bool(result.rowcount)

    def child_locations(self, entry_id: str) -> list[ChildLocation]:
        """Return storage locations of every gallery image and file of *entry_id*."""

        row_id = _parse_entry_id(entry_id)
        if row_id is None:
            return []
        with self._session_factory() as session:
            images = session.execute(
                select(EntryImageRow.image_url, EntryImageRow.storage_path)
                .where(EntryImageRow.entry_id == row_id)
                .order_by(EntryImageRow.sort_order, EntryImageRow.id)
            ).all()
            files = session.execute(
                select(EntryFileRow.file_url, EntryFileRow.storage_path)
                .where(EntryFileRow.entry_id == row_id)
                .order_by(EntryFileRow.sort_order, EntryFileRow.id)
            ).all()
        locations = [ChildLocation(AssetRole.GALLERY, url, path) for url, path in images]
        locations.extend(ChildLocation(AssetRole.FILE, url, path) for url, path in files)
        return locations

    def thumbnail_location(self, entry_id: str) -> StoredThumbnail | None:
        with self._session_factory() as session:
            row = self._fetch_row(session, entry_id)
            if row is None or not (row.thumb_url or row.thumb_storage_path):
                return None
            return StoredThumbnail(url=row.thumb_url or "", storage_path=row.thumb_storage_path)

    def delete_children(self, entry_id: str) -> int:
        """Delete gallery and file rows of *entry_id*; returns the row count."""

        row_id = _parse_entry_id(entry_id)
        if row_id is None:
            return 0
        with self._session_factory() as session, session.begin():
            images = session.execute(delete(EntryImageRow).where(EntryImageRow.entry_id == row_id))
            files = session.execute(delete(EntryFileRow).where(EntryFileRow.entry_id == row_id))
            return int(images.rowcount or 0) + int(files.rowcount or 0)

    def delete_row(self, entry_id: str) -> bool:
        """Delete the entry row itself; returns ``False`` if it was absent."""

        row_id = _parse_entry_id(entry_id)
        if row_id is None:
            return False
        with self._session_factory() as session, session.begin():
            result = session.execute(
                delete(CatalogEntryRow).where(
                    CatalogEntryRow.id == row_id,
                    CatalogEntryRow.kind == self._kind,
                )
            )
            return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _fetch_row(self, session: Session, entry_id: str) -> CatalogEntryRow | None:
        row_id = _parse_entry_id(entry_id)
        if row_id is None:
            return None
        row = session.get(CatalogEntryRow, row_id)
        if row is None or row.kind != self._kind:
            return None
        return row

    def _require_row(self, session: Session, entry_id: str) -> CatalogEntryRow:
        row = self._fetch_row(session, entry_id)
        if row is None:
            raise EntryNotFoundError(f"{self._kind} entry {entry_id} does not exist")
        return row

    @staticmethod
    def _next_child_order(session: Session, model: type[EntryImageRow] | type[EntryFileRow], entry_id: int) -> int:
        current = session.scalar(select(func.max(model.sort_order)).where(model.entry_id == entry_id))
        return 0 if current is None else int(current) + 1

    @staticmethod
    def _child_model(role: AssetRole) -> tuple[type[EntryImageRow] | type[EntryFileRow], str]:
        if role is AssetRole.GALLERY:
            return EntryImageRow, IMAGE_ID_PREFIX
        if role is AssetRole.FILE:
            return EntryFileRow, FILE_ID_PREFIX
        raise ValueError(f"{role.value} assets are not stored as child rows")

    @staticmethod
    def _image_to_asset(row: EntryImageRow) -> Asset:
        return Asset(
            ref=RemoteRef(f"{IMAGE_ID_PREFIX}{row.id}"),
            locator=row.image_url,
            role=AssetRole.GALLERY,
            mime=row.mime_type,
            storage_path=row.storage_path,
        )

    @staticmethod
    def _file_to_asset(row: EntryFileRow) -> Asset:
        return Asset(
            ref=RemoteRef(f"{FILE_ID_PREFIX}{row.id}"),
            locator=row.file_url,
            role=AssetRole.FILE,
            label=row.label or "Download",
            mime=row.mime_type,
            storage_path=row.storage_path,
        )

    def _row_to_record(
        self,
        row: CatalogEntryRow,
        *,
        include_assets: bool = False,
        image_count: int | None = None,
        file_count: int | None = None,
    ) -> CatalogEntry:
        entry_id = str(row.id)
        thumbnail = None
        if row.thumb_url:
            thumbnail = Asset(
                ref=RemoteRef(entry_id),
                locator=row.thumb_url,
                role=AssetRole.THUMBNAIL,
                storage_path=row.thumb_storage_path,
            )

        gallery: tuple[Asset, ...] = ()
        files: tuple[Asset, ...] = ()
        if include_assets:
            gallery = tuple(self._image_to_asset(image) for image in row.images)
            files = tuple(self._file_to_asset(item) for item in row.files)
            image_count = len(gallery)
            file_count = len(files)

        return CatalogEntry(
            id=entry_id,
            kind=row.kind,
            title=row.title,
            blurb=row.blurb or "",
            price_label=row.price_label or "",
            category_id=row.category_id or UNCATEGORIZED,
            thumbnail=thumbnail,
            thumb_storage_path=row.thumb_storage_path,
            gallery=gallery,
            files=files,
            image_count=image_count or 0,
            file_count=file_count or 0,
            sort_order=row.sort_order,
            active=row.is_active,
            created_at=row.created_at,
        )


def _parse_entry_id(entry_id: str | int) -> int | None:
    text = str(entry_id).strip()
    return int(text) if text.isdigit() else None


def _parse_child_id(asset_id: str, prefix: str) -> int | None:
    text = str(asset_id).strip()
    if text.startswith(prefix):
        text = text[len(prefix) :]
    return int(text) if text.isdigit() else None
