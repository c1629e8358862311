"""Asset store adapter: blobs in the kind's bucket plus their child rows."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import AssetRemovalError, AssetUploadError, EntryNotFoundError, StorageError
from ..media import detect_mime
from ..storage.object_store import ObjectStore, StorageLocator, build_object_path, parse_public_url
from .models import Asset, AssetRole, FilePayload, RemoteRef
from .repository import CatalogEntryRepository, StoredThumbnail

__all__ = ["AssetStoreAdapter", "DEFAULT_FILE_LABEL", "resolve_locator"]

logger = logging.getLogger(__name__)

DEFAULT_FILE_LABEL = "File"


def resolve_locator(
    storage_path: str | None,
    url: str | None,
    *,
    default_bucket: str,
) -> StorageLocator | None:
    """Return where an asset's bytes live.

    A recorded storage path always belongs to *default_bucket*; otherwise the
    bucket and path are recovered from the public URL, which may name a
    different bucket.
    """

    if storage_path:
        parsed = parse_public_url(storage_path)
        if parsed is not None:
            return parsed
        return StorageLocator(bucket=default_bucket, path=storage_path.lstrip("/"))
    return parse_public_url(url)


class AssetStoreAdapter:
    """Upload and remove the thumbnail, gallery images and files of entries."""

    def __init__(
        self,
        repository: CatalogEntryRepository,
        store: ObjectStore,
        bucket: str,
    ) -> None:
        self._repository = repository
        self._store = store
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    def write_blob(self, owner_id: str, payload: FilePayload) -> StoredThumbnail:
        """Store *payload* under ``owner_id/`` and return its locator pair."""

        if not payload.data:
            raise AssetUploadError(f"{payload.filename or 'upload'} is empty")
        path = build_object_path(owner_id, payload.filename)
        try:
            self._store.upload(self._bucket, path, payload.data)
        except StorageError as exc:
            logger.error("Upload of %s to %s failed: %s", payload.filename, self._bucket, exc)
            raise AssetUploadError(f"Upload failed: {exc}") from exc
        return StoredThumbnail(url=self._store.public_url(self._bucket, path), storage_path=path)

    def upload(
        self,
        owner_id: str,
        payload: FilePayload,
        *,
        role: AssetRole = AssetRole.GALLERY,
        label: str | None = None,
    ) -> Asset:
        """Upload a gallery image or file for an existing entry.

        Single shot: a failure is terminal for this call and nothing is
        retried.
        """

        if role is AssetRole.THUMBNAIL:
            return self.replace_thumbnail(owner_id, payload)
        if not self._repository.exists(owner_id):
            raise EntryNotFoundError(f"{self._repository.kind} entry {owner_id} does not exist")

        mime = detect_mime(payload)
        stored = self.write_blob(owner_id, payload)
        try:
            if role is AssetRole.GALLERY:
                asset = self._repository.add_image(
                    owner_id, url=stored.url, storage_path=stored.storage_path, mime=mime
                )
            else:
                asset = self._repository.add_file(
                    owner_id,
                    url=stored.url,
                    storage_path=stored.storage_path,
                    label=(label or "").strip() or DEFAULT_FILE_LABEL,
                    mime=mime,
                )
        except EntryNotFoundError:
            self.discard_blob(stored)
            raise
        except SQLAlchemyError as exc:
            self.discard_blob(stored)
            logger.error("Recording %s for %s failed: %s", role.value, owner_id, exc)
            raise AssetUploadError(f"DB insert failed: {exc}") from exc

        logger.info("Uploaded %s %s for %s entry %s", role.value, asset.id, self._repository.kind, owner_id)
        return asset

    def replace_thumbnail(self, owner_id: str, payload: FilePayload) -> Asset:
        """Upload a new thumbnail, repoint the entry and drop the old blob."""

        if not self._repository.exists(owner_id):
            raise EntryNotFoundError(f"{self._repository.kind} entry {owner_id} does not exist")

        mime = detect_mime(payload)
        stored = self.write_blob(owner_id, payload)
        try:
            previous = self._repository.set_thumbnail(owner_id, stored)
        except EntryNotFoundError:
            self.discard_blob(stored)
            raise
        except SQLAlchemyError as exc:
            self.discard_blob(stored)
            raise AssetUploadError(f"Failed to update thumbnail: {exc}") from exc

        if previous is not None:
            old = resolve_locator(previous.storage_path, previous.url, default_bucket=self._bucket)
            if old is not None and old.path != stored.storage_path:
                self._discard(old)

        return Asset(
            ref=RemoteRef(str(owner_id)),
            locator=stored.url,
            role=AssetRole.THUMBNAIL,
            mime=mime,
            storage_path=stored.storage_path,
        )

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------
    def remove(self, asset_id: str, *, role: AssetRole = AssetRole.GALLERY) -> None:
        """Remove a gallery image or file; unknown ids are a no-op."""

        location = self._repository.find_child(asset_id, role)
        if location is None:
            logger.debug("Removal of unknown %s %s ignored", role.value, asset_id)
            return

        locator = resolve_locator(location.storage_path, location.url, default_bucket=self._bucket)
        if locator is not None:
            self._discard(locator)
        try:
            self._repository.delete_child(asset_id, role)
        except SQLAlchemyError as exc:
            logger.error("Deleting %s row %s failed: %s", role.value, asset_id, exc)
            raise AssetRemovalError(f"Failed to delete {role.value} {asset_id}: {exc}") from exc
        logger.info("Removed %s %s from %s", role.value, asset_id, self._repository.kind)

    def discard_blob(self, stored: StoredThumbnail) -> bool:
        """Best-effort removal of a blob written by :meth:`write_blob`."""

        locator = resolve_locator(stored.storage_path, stored.url, default_bucket=self._bucket)
        if locator is None:
            return False
        return self._discard(locator)

    def _discard(self, locator: StorageLocator) -> bool:
        if not locator.path:
            return False
        try:
            self._store.remove(locator.bucket, [locator.path])
        except StorageError as exc:
            logger.warning("Storage removal warning (%s): %s", locator.bucket, exc)
            return False
        return True
