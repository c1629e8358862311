"""Catalog domain: records, categories, entries, assets and deletion."""

from .assets import AssetStoreAdapter
from .cascade import CascadeResult, CascadeStatus, DeletionCascade
from .categories import CategoryRegistry, slugify
from .models import (
    CATALOG_KINDS,
    UNCATEGORIZED,
    Asset,
    AssetRef,
    AssetRole,
    CatalogEntry,
    CatalogPage,
    Category,
    EntryFields,
    FilePayload,
    LocalRef,
    PendingAsset,
    RemoteRef,
    new_local_ref,
    parse_asset_id,
)
from .repository import CatalogEntryRepository
from .service import CatalogBackend, build_backends

__all__ = [
    "Asset",
    "AssetRef",
    "AssetRole",
    "AssetStoreAdapter",
    "CATALOG_KINDS",
    "CascadeResult",
    "CascadeStatus",
    "CatalogBackend",
    "CatalogEntry",
    "CatalogEntryRepository",
    "CatalogPage",
    "Category",
    "CategoryRegistry",
    "DeletionCascade",
    "EntryFields",
    "FilePayload",
    "LocalRef",
    "PendingAsset",
    "RemoteRef",
    "UNCATEGORIZED",
    "build_backends",
    "new_local_ref",
    "parse_asset_id",
    "slugify",
]
