"""In-memory entry and asset gateways for dashboard tests."""

from __future__ import annotations

import itertools
from dataclasses import replace

import pytest

from printcatalog.catalog.cascade import CascadeResult, CascadeStatus
from printcatalog.catalog.models import (
    Asset,
    AssetRole,
    CatalogEntry,
    CatalogPage,
    Category,
    EntryFields,
    FilePayload,
    RemoteRef,
)
from printcatalog.errors import AssetRemovalError, AssetUploadError, EntryNotFoundError, EntrySaveError


class FakeCatalog:
    """Implements both gateway protocols and records every call."""

    def __init__(self) -> None:
        self.entries: dict[str, CatalogEntry] = {}
        self.calls: list[tuple] = []
        self.fail_create = False
        self.fail_update = False
        self.fail_uploads: set[str] = set()
        self.fail_removals = False
        self.fail_thumbnail = False
        self.fail_delete = False
        self.categories = [Category(id="uncategorized", kind="designs", label="Uncategorized")]
        self._ids = itertools.count(1)

    # Entry gateway -----------------------------------------------------
    def list_entries(self, *, category=None, query=None, page=1, page_size=12, active_only=False):
        self.calls.append(("list",))
        items = tuple(
            replace(entry, gallery=(), files=()) for entry in self.entries.values()
        )
        return CatalogPage(items=items, total=len(items))

    def get_entry(self, entry_id: str) -> CatalogEntry:
        self.calls.append(("get", entry_id))
        try:
            return self.entries[entry_id]
        except KeyError:
            raise EntryNotFoundError(entry_id) from None

    def create_entry(self, fields: EntryFields, thumbnail: FilePayload) -> CatalogEntry:
        self.calls.append(("create", fields.title, thumbnail.filename))
        if self.fail_create:
            raise EntrySaveError("create rejected")
        entry_id = str(next(self._ids))
        entry = CatalogEntry(
            id=entry_id,
            kind="designs",
            title=fields.title,
            blurb=fields.blurb,
            price_label=fields.price_label,
            category_id=fields.category_id,
            thumbnail=Asset(
                ref=RemoteRef(entry_id),
                locator=f"https://cdn/{entry_id}/{thumbnail.filename}",
                role=AssetRole.THUMBNAIL,
                storage_path=f"{entry_id}/{thumbnail.filename}",
            ),
            thumb_storage_path=f"{entry_id}/{thumbnail.filename}",
            sort_order=fields.sort_order,
            active=fields.active,
        )
        self.entries[entry_id] = entry
        return entry

    def update_entry(self, entry_id: str, fields: EntryFields) -> CatalogEntry:
        self.calls.append(("update", entry_id, fields.title))
        if self.fail_update:
            raise EntrySaveError("update rejected")
        entry = replace(
            self.get_entry(entry_id),
            title=fields.title,
            blurb=fields.blurb,
            price_label=fields.price_label,
            category_id=fields.category_id,
            sort_order=fields.sort_order,
            active=fields.active,
        )
        self.entries[entry_id] = entry
        return entry

    def delete_entry(self, entry_id: str, thumb_storage_path=None, *, delete_assets=True) -> CascadeResult:
        self.calls.append(("delete", entry_id, thumb_storage_path, delete_assets))
        if self.fail_delete:
            return CascadeResult(
                entry_id=entry_id,
                status=CascadeStatus.ROW_DELETE_FAILED,
                error="database is locked",
            )
        if self.entries.pop(entry_id, None) is None:
            return CascadeResult(entry_id=entry_id, status=CascadeStatus.ALREADY_ABSENT)
        return CascadeResult(entry_id=entry_id, status=CascadeStatus.DELETED)

    # Asset gateway -----------------------------------------------------
    def upload(self, owner_id: str, payload: FilePayload, *, role=AssetRole.GALLERY, label=None) -> Asset:
        self.calls.append(("upload", owner_id, payload.filename, role))
        if payload.filename in self.fail_uploads:
            raise AssetUploadError(f"{payload.filename} rejected")
        prefix = "file" if role is AssetRole.FILE else "image"
        asset = Asset(
            ref=RemoteRef(f"{prefix}-{next(self._ids)}"),
            locator=f"https://cdn/{owner_id}/{payload.filename}",
            role=role,
            label=label,
            storage_path=f"{owner_id}/{payload.filename}",
        )
        entry = self.entries[owner_id]
        if role is AssetRole.FILE:
            entry = replace(entry, files=(*entry.files, asset), file_count=entry.file_count + 1)
        else:
            entry = replace(entry, gallery=(*entry.gallery, asset), image_count=entry.image_count + 1)
        self.entries[owner_id] = entry
        return asset

    def replace_thumbnail(self, owner_id: str, payload: FilePayload) -> Asset:
        self.calls.append(("thumbnail", owner_id, payload.filename))
        if self.fail_thumbnail:
            raise AssetUploadError("thumbnail rejected")
        asset = Asset(
            ref=RemoteRef(owner_id),
            locator=f"https://cdn/{owner_id}/{payload.filename}",
            role=AssetRole.THUMBNAIL,
            storage_path=f"{owner_id}/{payload.filename}",
        )
        self.entries[owner_id] = replace(
            self.entries[owner_id], thumbnail=asset, thumb_storage_path=asset.storage_path
        )
        return asset

    def remove(self, asset_id: str, *, role=AssetRole.GALLERY) -> None:
        self.calls.append(("remove", asset_id, role))
        if self.fail_removals:
            raise AssetRemovalError(f"{asset_id} could not be removed")
        for entry_id, entry in self.entries.items():
            self.entries[entry_id] = replace(
                entry,
                gallery=tuple(a for a in entry.gallery if a.id != asset_id),
                files=tuple(a for a in entry.files if a.id != asset_id),
            )

    # Category source ---------------------------------------------------
    def list_categories(self) -> list[Category]:
        return list(self.categories)

    def network_calls(self) -> list[tuple]:
        return [call for call in self.calls if call[0] not in {"list", "get"}]

    def seed(self, title: str = "Existing", gallery: int = 0) -> CatalogEntry:
        entry = self.create_entry(EntryFields(title=title), FilePayload("seed.png", b"seed"))
        for index in range(gallery):
            self.upload(entry.id, FilePayload(f"seed-{index}.png", b"img"))
        self.calls.clear()
        return self.entries[entry.id]


@pytest.fixture()
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture()
def controller(fake_catalog):
    from printcatalog.dashboard import DraftController

    return DraftController(fake_catalog, fake_catalog, categories=fake_catalog)
