"""List-view cache of catalog entries shown in the dashboard grid."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace

from ..catalog.models import Asset, AssetRole, CatalogEntry
from ..config import get_config
from ..errors import CatalogError
from .gateways import EntryGateway

__all__ = ["CatalogListing"]

logger = logging.getLogger(__name__)


class CatalogListing:
    """Ordered cache of entry summaries mirrored against the backend.

    The cache is mutated optimistically by the draft controller so the grid
    never disagrees with an open draft.  ``hydrate`` fills in asset lists for
    several rows at once.
    """

    def __init__(self, gateway: EntryGateway, *, workers: int | None = None) -> None:
        self._gateway = gateway
        self._workers = workers if workers is not None else get_config().hydrate_workers
        self._entries: list[CatalogEntry] = []
        self._total = 0
        self._hydrated: set[str] = set()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def total(self) -> int:
        return self._total

    @property
    def entries(self) -> tuple[CatalogEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def get(self, entry_id: str) -> CatalogEntry | None:
        with self._lock:
            index = self._index(entry_id)
            return None if index is None else self._entries[index]

    def is_hydrated(self, entry_id: str) -> bool:
        with self._lock:
            return entry_id in self._hydrated

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)

    def __contains__(self, entry_id: object) -> bool:
        return isinstance(entry_id, str) and self.get(entry_id) is not None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def refresh(
        self,
        *,
        category: str | None = None,
        query: str | None = None,
        page: int = 1,
        page_size: int = 12,
    ) -> tuple[CatalogEntry, ...]:
        """Replace the cache with one page fetched from the gateway."""

        result = self._gateway.list_entries(
            category=category,
            query=query,
            page=page,
            page_size=page_size,
        )
        with self._lock:
            self._entries = list(result.items)
            self._total = result.total
            self._hydrated.clear()
        logger.debug("Loaded %d of %d entries", len(result.items), result.total)
        return result.items

    def hydrate(self, entry_ids: Iterable[str] | None = None) -> int:
        """Fetch full entries concurrently for rows lacking asset lists.

        Returns the number of rows refreshed.  Individual failures are logged
        and leave the cached summary untouched.
        """

        with self._lock:
            wanted = list(entry_ids) if entry_ids is not None else [
                entry.id for entry in self._entries if entry.id not in self._hydrated
            ]
        if not wanted:
            return 0

        refreshed = 0
        with ThreadPoolExecutor(max_workers=max(1, self._workers)) as executor:
            futures = {executor.submit(self._gateway.get_entry, entry_id): entry_id for entry_id in wanted}
            for future in as_completed(futures):
                entry_id = futures[future]
                try:
                    entry = future.result()
                except (CatalogError, KeyError) as exc:
                    logger.warning("Could not hydrate entry %s: %s", entry_id, exc)
                    continue
                if self.store_full(entry):
                    refreshed += 1
        return refreshed

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def store_full(self, entry: CatalogEntry) -> bool:
        """Replace the cached row for *entry* with a fully loaded copy."""

        with self._lock:
            index = self._index(entry.id)
            if index is None:
                return False
            self._entries[index] = entry
            self._hydrated.add(entry.id)
            return True

    def prepend(self, entry: CatalogEntry) -> None:
        with self._lock:
            index = self._index(entry.id)
            if index is not None:
                del self._entries[index]
            else:
                self._total += 1
            self._entries.insert(0, entry)
            self._hydrated.add(entry.id)

    def upsert(self, entry: CatalogEntry) -> None:
        """Update *entry* in place, keeping its asset lists when it has none."""

        with self._lock:
            index = self._index(entry.id)
            if index is None:
                self._entries.append(entry)
                self._total += 1
                return
            current = self._entries[index]
            if entry.id not in self._hydrated or entry.gallery or entry.files:
                self._entries[index] = entry
            else:
                self._entries[index] = replace(
                    entry,
                    gallery=current.gallery,
                    files=current.files,
                    image_count=current.image_count,
                    file_count=current.file_count,
                )

    def remove(self, entry_id: str) -> CatalogEntry | None:
        with self._lock:
            index = self._index(entry_id)
            if index is None:
                return None
            self._total = max(0, self._total - 1)
            self._hydrated.discard(entry_id)
            return self._entries.pop(index)

    def append_asset(self, entry_id: str, asset: Asset) -> None:
        """Mirror an uploaded gallery image or file into the cached row."""

        with self._lock:
            index = self._index(entry_id)
            if index is None:
                return
            entry = self._entries[index]
            if asset.role is AssetRole.FILE:
                entry = replace(entry, files=(*entry.files, asset), file_count=entry.file_count + 1)
            elif asset.role is AssetRole.GALLERY:
                entry = replace(entry, gallery=(*entry.gallery, asset), image_count=entry.image_count + 1)
            else:
                entry = replace(entry, thumbnail=asset, thumb_storage_path=asset.storage_path)
            self._entries[index] = entry

    def drop_asset(self, entry_id: str, asset_id: str) -> None:
        with self._lock:
            index = self._index(entry_id)
            if index is None:
                return
            entry = self._entries[index]
            gallery = tuple(item for item in entry.gallery if item.id != asset_id)
            files = tuple(item for item in entry.files if item.id != asset_id)
            self._entries[index] = replace(
                entry,
                gallery=gallery,
                files=files,
                image_count=max(0, entry.image_count - (len(entry.gallery) - len(gallery))),
                file_count=max(0, entry.file_count - (len(entry.files) - len(files))),
            )

    def _index(self, entry_id: str) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None
