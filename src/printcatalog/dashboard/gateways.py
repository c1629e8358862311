"""Interfaces the dashboard uses to reach catalog entries and assets."""

from __future__ import annotations

from typing import Protocol

from ..catalog.cascade import CascadeResult
from ..catalog.models import Asset, AssetRole, CatalogEntry, CatalogPage, EntryFields, FilePayload

__all__ = ["AssetGateway", "EntryGateway"]


class EntryGateway(Protocol):
    """Create, read, update and delete catalog entries of one kind."""

    def list_entries(
        self,
        *,
        category: str | None = None,
        query: str | None = None,
        page: int = 1,
        page_size: int = 12,
        active_only: bool = False,
    ) -> CatalogPage:
        """Return a page of entry summaries (counts, no asset lists)."""

    def get_entry(self, entry_id: str) -> CatalogEntry:
        """Return the full entry including its gallery and files."""

    def create_entry(self, fields: EntryFields, thumbnail: FilePayload) -> CatalogEntry:
        """Persist a new entry with its thumbnail."""

    def update_entry(self, entry_id: str, fields: EntryFields) -> CatalogEntry:
        """Overwrite the core columns of an existing entry."""

    def delete_entry(
        self,
        entry_id: str,
        thumb_storage_path: str | None = None,
        *,
        delete_assets: bool = True,
    ) -> CascadeResult:
        """Delete the entry, its child rows and (optionally) its stored blobs."""


class AssetGateway(Protocol):
    """Upload and remove assets owned by persisted entries."""

    def upload(
        self,
        owner_id: str,
        payload: FilePayload,
        *,
        role: AssetRole = AssetRole.GALLERY,
        label: str | None = None,
    ) -> Asset:
        """Store *payload* for *owner_id* and return the durable asset."""

    def replace_thumbnail(self, owner_id: str, payload: FilePayload) -> Asset:
        """Swap the thumbnail of *owner_id* for *payload*."""

    def remove(self, asset_id: str, *, role: AssetRole = AssetRole.GALLERY) -> None:
        """Remove an asset; unknown ids succeed silently."""
