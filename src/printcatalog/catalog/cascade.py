"""Deletion cascade removing an entry, its child rows and its blobs."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError
from ..storage.object_store import ObjectStore, StorageLocator
from .assets import resolve_locator
from .repository import CatalogEntryRepository

__all__ = ["CascadeResult", "CascadeStatus", "DeletionCascade", "group_by_bucket"]

logger = logging.getLogger(__name__)


class CascadeStatus(str, Enum):
    """Outcome of a single :meth:`DeletionCascade.delete` call."""

    DELETED = "deleted"
    PARTIAL_CLEANUP_FAILURE = "partial_cleanup_failure"
    ROW_DELETE_FAILED = "row_delete_failed"
    ALREADY_ABSENT = "already_absent"


@dataclass(frozen=True, slots=True)
class CascadeResult:
    """What happened to the entry and which blobs could not be removed."""

    entry_id: str
    status: CascadeStatus
    removed: tuple[StorageLocator, ...] = ()
    partial_cleanup_failure: tuple[StorageLocator, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        """``True`` when the entry row no longer exists."""

        return self.status is not CascadeStatus.ROW_DELETE_FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "id": self.entry_id,
            "status": self.status.value,
            "removed": [{"bucket": item.bucket, "path": item.path} for item in self.removed],
            "failed": [
                {"bucket": item.bucket, "path": item.path} for item in self.partial_cleanup_failure
            ],
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CascadeResult:
        def locators(key: str) -> tuple[StorageLocator, ...]:
            return tuple(
                StorageLocator(bucket=str(item["bucket"]), path=str(item["path"]))
                for item in payload.get(key) or ()
            )

        return cls(
            entry_id=str(payload.get("id") or ""),
            status=CascadeStatus(payload.get("status") or CascadeStatus.DELETED.value),
            removed=locators("removed"),
            partial_cleanup_failure=locators("failed"),
            error=payload.get("error"),
        )


def group_by_bucket(locators: list[StorageLocator]) -> dict[str, list[str]]:
    """Group *locators* by bucket, keeping first-seen order and dropping repeats."""

    grouped: dict[str, list[str]] = {}
    for locator in locators:
        paths = grouped.setdefault(locator.bucket, [])
        if locator.path not in paths:
            paths.append(locator.path)
    return grouped


class DeletionCascade:
    """Delete an entry row-first, then clean up storage on a best-effort basis.

    The relational row decides whether an entry exists.  Child rows go
    before the parent; storage is only touched once the parent row is gone,
    and a storage failure never turns a successful delete into an error.
    """

    def __init__(
        self,
        repository: CatalogEntryRepository,
        store: ObjectStore,
        bucket: str,
    ) -> None:
        self._repository = repository
        self._store = store
        self._bucket = bucket

    def delete(
        self,
        entry_id: str,
        thumb_storage_path: str | None = None,
        *,
        delete_assets: bool = True,
    ) -> CascadeResult:
        entry_id = str(entry_id).strip()
        if not self._repository.exists(entry_id):
            logger.info("%s entry %s already absent", self._repository.kind, entry_id)
            return CascadeResult(entry_id=entry_id, status=CascadeStatus.ALREADY_ABSENT)

        locators = self._collect_locators(entry_id, thumb_storage_path) if delete_assets else []

        try:
            self._repository.delete_children(entry_id)
            deleted = self._repository.delete_row(entry_id)
        except SQLAlchemyError as exc:
            logger.error("Failed to delete %s entry %s: %s", self._repository.kind, entry_id, exc)
            return CascadeResult(
                entry_id=entry_id,
                status=CascadeStatus.ROW_DELETE_FAILED,
                error=str(exc),
            )
        if not deleted:
            return CascadeResult(entry_id=entry_id, status=CascadeStatus.ALREADY_ABSENT)

        removed: list[StorageLocator] = []
        failed: list[StorageLocator] = []
        for bucket, paths in group_by_bucket(locators).items():
            try:
                gone = self._store.remove(bucket, paths)
            except StorageError as exc:
                logger.warning("Storage removal warning (%s): %s", bucket, exc)
                failed.extend(StorageLocator(bucket, path) for path in paths)
                continue
            removed.extend(StorageLocator(bucket, path) for path in gone)

        status = CascadeStatus.PARTIAL_CLEANUP_FAILURE if failed else CascadeStatus.DELETED
        logger.info(
            "Deleted %s entry %s (%d blob(s) removed, %d failed)",
            self._repository.kind,
            entry_id,
            len(removed),
            len(failed),
        )
        return CascadeResult(
            entry_id=entry_id,
            status=status,
            removed=tuple(removed),
            partial_cleanup_failure=tuple(failed),
        )

    def _collect_locators(self, entry_id: str, thumb_storage_path: str | None) -> list[StorageLocator]:
        locators: list[StorageLocator] = []
        for child in self._repository.child_locations(entry_id):
            locator = resolve_locator(child.storage_path, child.url, default_bucket=self._bucket)
            if locator is not None:
                locators.append(locator)

        if thumb_storage_path:
            thumb = resolve_locator(thumb_storage_path, None, default_bucket=self._bucket)
        else:
            stored = self._repository.thumbnail_location(entry_id)
            thumb = (
                resolve_locator(stored.storage_path, stored.url, default_bucket=self._bucket)
                if stored is not None
                else None
            )
        if thumb is not None:
            locators.append(thumb)
        return locators
