"""Edit buffer for a single catalog entry, saved or not yet saved.

The controller holds one :class:`Draft` at a time.  Assets added to an entry
that already exists are uploaded straight away; assets added to a new entry
are kept as :class:`~printcatalog.catalog.models.PendingAsset` objects and
promoted, one after another and in the order they were queued, once the
entry has been created.

Failure severity follows four tiers:

* a missing title or thumbnail blocks :meth:`DraftController.save` with
  :class:`~printcatalog.errors.DraftValidationError`;
* a failed create/update raises :class:`~printcatalog.errors.EntrySaveError`
  and keeps the draft for a retry;
* a failed single-asset upload or removal is logged and does not undo the
  entry-level save;
* storage cleanup after a delete is reported by the deletion cascade.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol

from ..catalog.cascade import CascadeResult
from ..catalog.models import (
    UNCATEGORIZED,
    Asset,
    AssetRef,
    AssetRole,
    CatalogEntry,
    Category,
    EntryFields,
    FilePayload,
    LocalRef,
    PendingAsset,
    new_local_ref,
    parse_asset_id,
)
from ..config import get_config
from ..errors import (
    AssetUploadError,
    CatalogError,
    DraftStateError,
    DraftValidationError,
    EntrySaveError,
)
from ..media import PreviewRegistry, detect_mime
from .gateways import AssetGateway, EntryGateway
from .listing import CatalogListing

__all__ = [
    "Draft",
    "DraftController",
    "DraftState",
    "RemovalOutcome",
    "SaveResult",
]

logger = logging.getLogger(__name__)


class DraftState(str, Enum):
    EMPTY = "empty"
    EDITING = "editing"


class RemovalOutcome(str, Enum):
    """What :meth:`DraftController.remove_asset` did."""

    LOCAL_DROPPED = "local_dropped"
    REMOTE_REMOVED = "remote_removed"
    REMOTE_FAILED = "remote_failed"
    ABSENT = "absent"


class CategorySource(Protocol):
    def list_categories(self) -> list[Category]:
        """Return the categories available for new entries."""


@dataclass(slots=True)
class Draft:
    """Mutable copy of an entry being edited."""

    id: str = ""
    fields: EntryFields = field(default_factory=EntryFields)
    thumbnail: Asset | None = None
    thumb_storage_path: str | None = None
    gallery: list[Asset] = field(default_factory=list)
    files: list[Asset] = field(default_factory=list)
    pending_thumbnail: FilePayload | None = None
    pending: list[PendingAsset] = field(default_factory=list)

    @property
    def is_new(self) -> bool:
        return not self.id

    def assets(self) -> Iterable[Asset]:
        if self.thumbnail is not None:
            yield self.thumbnail
        yield from self.gallery
        yield from self.files

    def find(self, ref: AssetRef) -> Asset | None:
        for asset in (*self.gallery, *self.files):
            if asset.ref == ref:
                return asset
        return None

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> Draft:
        return cls(
            id=entry.id,
            fields=entry.fields,
            thumbnail=entry.thumbnail,
            thumb_storage_path=entry.thumb_storage_path,
            gallery=list(entry.gallery),
            files=list(entry.files),
        )


@dataclass(frozen=True, slots=True)
class SaveResult:
    """Outcome of a successful :meth:`DraftController.save`."""

    entry: CatalogEntry
    created: bool
    skipped: tuple[PendingAsset, ...] = ()
    thumbnail_error: str | None = None

    @property
    def complete(self) -> bool:
        return not self.skipped and self.thumbnail_error is None


class DraftController:
    """Own the in-progress draft and reconcile it with the backend."""

    def __init__(
        self,
        entries: EntryGateway,
        assets: AssetGateway,
        *,
        listing: CatalogListing | None = None,
        previews: PreviewRegistry | None = None,
        categories: CategorySource | None = None,
        max_file_bytes: int | None = None,
    ) -> None:
        self._entries = entries
        self._assets = assets
        self._listing = listing if listing is not None else CatalogListing(entries)
        self._previews = previews if previews is not None else PreviewRegistry()
        self._categories = categories
        self._max_file_bytes = max_file_bytes if max_file_bytes is not None else get_config().max_file_bytes
        self._draft: Draft | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> DraftState:
        return DraftState.EMPTY if self._draft is None else DraftState.EDITING

    @property
    def draft(self) -> Draft:
        if self._draft is None:
            raise DraftStateError("No draft is open")
        return self._draft

    @property
    def listing(self) -> CatalogListing:
        return self._listing

    @property
    def previews(self) -> PreviewRegistry:
        return self._previews

    # ------------------------------------------------------------------
    # Opening and closing
    # ------------------------------------------------------------------
    def start_new(self, default_category: str | None = None) -> Draft:
        """Open a blank draft for an entry that does not exist yet."""

        self._close()
        category = default_category or self._first_category()
        self._draft = Draft(fields=EntryFields(category_id=category, sort_order=len(self._listing)))
        return self._draft

    def start_edit(self, entry_id: str) -> Draft:
        """Load the full entry (gallery and files included) into a draft."""

        entry = self._entries.get_entry(entry_id)
        self._close()
        self._listing.store_full(entry)
        self._draft = Draft.from_entry(entry)
        return self._draft

    def cancel(self) -> None:
        """Discard the draft and its pending uploads without network calls."""

        if self._draft is not None and self._draft.pending:
            logger.debug("Discarding %d pending asset(s)", len(self._draft.pending))
        self._close()

    def delete_entry(self, entry_id: str, *, delete_assets: bool = True) -> CascadeResult:
        """Delete a persisted entry and forget it locally once the row is gone.

        The thumbnail path is taken from the cached row (or the open draft) so
        the cascade can remove the blob even when it lives in another bucket.
        A ``ROW_DELETE_FAILED`` result leaves the cache and the draft intact.
        """

        cached = self._listing.get(entry_id)
        thumb_storage_path = cached.thumb_storage_path if cached is not None else None
        draft = self._draft
        if thumb_storage_path is None and draft is not None and draft.id == entry_id:
            thumb_storage_path = draft.thumb_storage_path

        result = self._entries.delete_entry(entry_id, thumb_storage_path, delete_assets=delete_assets)
        if not result.ok:
            logger.error("Deleting entry %s failed: %s", entry_id, result.error)
            return result

        if result.partial_cleanup_failure:
            logger.warning(
                "Entry %s deleted; %d stored object(s) were not removed",
                entry_id,
                len(result.partial_cleanup_failure),
            )
        self._listing.remove(entry_id)
        if self._draft is not None and self._draft.id == entry_id:
            self._close()
        return result

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------
    def update_fields(self, **changes: Any) -> EntryFields:
        draft = self.draft
        draft.fields = replace(draft.fields, **changes)
        return draft.fields

    def set_title(self, title: str) -> None:
        self.update_fields(title=title)

    def set_blurb(self, blurb: str) -> None:
        self.update_fields(blurb=blurb)

    def set_price_label(self, price_label: str) -> None:
        self.update_fields(price_label=price_label)

    def set_category(self, category_id: str) -> None:
        self.update_fields(category_id=category_id or UNCATEGORIZED)

    def set_sort_order(self, sort_order: int) -> None:
        self.update_fields(sort_order=int(sort_order))

    def set_active(self, active: bool) -> None:
        self.update_fields(active=bool(active))

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------
    def pick_thumbnail(self, payload: FilePayload) -> Asset:
        """Stage *payload* as the thumbnail; it is only uploaded on save."""

        draft = self.draft
        self._check_payload(payload)
        if draft.thumbnail is not None and isinstance(draft.thumbnail.ref, LocalRef):
            self._previews.release(draft.thumbnail.locator)

        draft.thumbnail = Asset(
            ref=new_local_ref(),
            locator=self._previews.acquire(payload),
            role=AssetRole.THUMBNAIL,
            mime=detect_mime(payload),
        )
        draft.pending_thumbnail = payload
        return draft.thumbnail

    def add_gallery_asset(self, payload: FilePayload) -> Asset:
        return self._add_asset(AssetRole.GALLERY, payload)

    def add_file_asset(self, payload: FilePayload, label: str | None = None) -> Asset:
        if payload.size > self._max_file_bytes:
            limit_mb = self._max_file_bytes // (1024 * 1024)
            raise DraftValidationError(f"{payload.filename} is larger than {limit_mb} MB")
        return self._add_asset(AssetRole.FILE, payload, label=label)

    def remove_asset(self, asset_id: str | AssetRef) -> RemovalOutcome:
        """Drop an asset from the draft.

        Local assets disappear without a network call.  Remote assets are
        removed from the draft and the list cache first; a failed removal
        request is logged and the asset stays gone from the UI.
        """

        draft = self.draft
        ref = parse_asset_id(asset_id) if isinstance(asset_id, str) else asset_id
        asset = draft.find(ref)
        if asset is None:
            return RemovalOutcome.ABSENT

        self._detach(draft, asset)
        if isinstance(ref, LocalRef):
            draft.pending = [item for item in draft.pending if item.ref != ref]
            self._previews.release(asset.locator)
            return RemovalOutcome.LOCAL_DROPPED

        self._listing.drop_asset(draft.id, asset.id)
        try:
            self._assets.remove(asset.id, role=asset.role)
        except CatalogError as exc:
            logger.warning("Removing %s %s failed: %s", asset.role.value, asset.id, exc)
            return RemovalOutcome.REMOTE_FAILED
        return RemovalOutcome.REMOTE_REMOVED

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------
    def save(self) -> SaveResult:
        draft = self.draft
        fields = replace(draft.fields, title=draft.fields.title.strip())
        if not fields.title:
            raise DraftValidationError("Missing title")
        if draft.is_new:
            if draft.pending_thumbnail is None:
                raise DraftValidationError("Choose a thumbnail before saving")
            result = self._save_new(draft, fields, draft.pending_thumbnail)
        else:
            result = self._save_existing(draft, fields)
        self._close()
        return result

    def _save_new(self, draft: Draft, fields: EntryFields, thumbnail: FilePayload) -> SaveResult:
        try:
            entry = self._entries.create_entry(fields, thumbnail)
        except CatalogError as exc:
            logger.error("Creating entry %r failed: %s", fields.title, exc)
            if isinstance(exc, EntrySaveError):
                raise
            raise EntrySaveError(str(exc)) from exc

        gallery = list(entry.gallery)
        files = list(entry.files)
        skipped: list[PendingAsset] = []
        for pending in draft.pending:
            try:
                asset = self._assets.upload(
                    entry.id,
                    pending.payload,
                    role=pending.role,
                    label=pending.label,
                )
            except CatalogError as exc:
                logger.warning(
                    "Uploading %s %s for entry %s failed: %s",
                    pending.role.value,
                    pending.payload.filename,
                    entry.id,
                    exc,
                )
                skipped.append(pending)
                continue
            (files if pending.role is AssetRole.FILE else gallery).append(asset)

        entry = replace(
            entry,
            gallery=tuple(gallery),
            files=tuple(files),
            image_count=len(gallery),
            file_count=len(files),
        )
        self._listing.prepend(entry)
        logger.info(
            "Created entry %s with %d image(s) and %d file(s)",
            entry.id,
            len(gallery),
            len(files),
        )
        return SaveResult(entry=entry, created=True, skipped=tuple(skipped))

    def _save_existing(self, draft: Draft, fields: EntryFields) -> SaveResult:
        try:
            entry = self._entries.update_entry(draft.id, fields)
        except CatalogError as exc:
            logger.error("Updating entry %s failed: %s", draft.id, exc)
            if isinstance(exc, EntrySaveError):
                raise
            raise EntrySaveError(str(exc)) from exc

        thumbnail_error = None
        if draft.pending_thumbnail is not None:
            try:
                thumbnail = self._assets.replace_thumbnail(draft.id, draft.pending_thumbnail)
            except CatalogError as exc:
                logger.warning("Replacing thumbnail of %s failed: %s", draft.id, exc)
                thumbnail_error = str(exc)
            else:
                if draft.thumbnail is not None and isinstance(draft.thumbnail.ref, LocalRef):
                    self._previews.release(draft.thumbnail.locator)
                draft.thumbnail = thumbnail
                draft.thumb_storage_path = thumbnail.storage_path
                entry = replace(entry, thumbnail=thumbnail, thumb_storage_path=thumbnail.storage_path)

        if not entry.gallery and not entry.files and (draft.gallery or draft.files):
            entry = replace(
                entry,
                gallery=tuple(draft.gallery),
                files=tuple(draft.files),
                image_count=len(draft.gallery),
                file_count=len(draft.files),
            )
        self._listing.upsert(entry)
        return SaveResult(entry=entry, created=False, thumbnail_error=thumbnail_error)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _add_asset(self, role: AssetRole, payload: FilePayload, *, label: str | None = None) -> Asset:
        draft = self.draft
        self._check_payload(payload)
        if role is AssetRole.FILE:
            label = (label or "").strip() or payload.filename

        if draft.id:
            try:
                asset = self._assets.upload(draft.id, payload, role=role, label=label)
            except CatalogError as exc:
                logger.warning("Uploading %s for entry %s failed: %s", payload.filename, draft.id, exc)
                if isinstance(exc, AssetUploadError):
                    raise
                raise AssetUploadError(str(exc)) from exc
            self._attach(draft, asset)
            self._listing.append_asset(draft.id, asset)
            return asset

        ref = new_local_ref()
        asset = Asset(
            ref=ref,
            locator=self._previews.acquire(payload),
            role=role,
            label=label,
            mime=detect_mime(payload),
        )
        self._attach(draft, asset)
        draft.pending.append(PendingAsset(role=role, ref=ref, payload=payload, label=label))
        return asset

    @staticmethod
    def _attach(draft: Draft, asset: Asset) -> None:
        (draft.files if asset.role is AssetRole.FILE else draft.gallery).append(asset)

    @staticmethod
    def _detach(draft: Draft, asset: Asset) -> None:
        draft.gallery = [item for item in draft.gallery if item.ref != asset.ref]
        draft.files = [item for item in draft.files if item.ref != asset.ref]

    @staticmethod
    def _check_payload(payload: FilePayload) -> None:
        if not payload.data:
            raise DraftValidationError(f"{payload.filename or 'File'} is empty")

    def _first_category(self) -> str:
        if self._categories is None:
            return UNCATEGORIZED
        try:
            categories = self._categories.list_categories()
        except CatalogError as exc:
            logger.warning("Could not load categories: %s", exc)
            return UNCATEGORIZED
        return categories[0].id if categories else UNCATEGORIZED

    def _close(self) -> None:
        draft = self._draft
        self._draft = None
        if draft is None:
            return
        for asset in draft.assets():
            if isinstance(asset.ref, LocalRef):
                self._previews.release(asset.locator)
