"""Exception hierarchy shared by the backend and the dashboard client.

The hierarchy mirrors the severity ladder used throughout the package:

* :class:`DraftValidationError` – the draft is incomplete; saving is blocked
  but nothing was sent anywhere.
* :class:`EntrySaveError` – the create/update call failed; the draft is kept
  so the user can retry.
* :class:`AssetUploadError` / :class:`AssetRemovalError` – a single asset
  operation failed; callers log it and carry on.

Storage cleanup failures during a cascade are not raised at all; they are
reported through :class:`printcatalog.catalog.cascade.CascadeResult`.
"""

from __future__ import annotations

__all__ = [
    "AssetRemovalError",
    "AssetUploadError",
    "CatalogError",
    "CategoryError",
    "DraftStateError",
    "DraftValidationError",
    "EntryNotFoundError",
    "EntrySaveError",
    "StorageError",
    "ValidationError",
]


class CatalogError(RuntimeError):
    """Base class for every error raised by printcatalog."""


class ValidationError(CatalogError, ValueError):
    """Raised when user supplied data is incomplete or malformed."""


class DraftValidationError(ValidationError):
    """Raised when a draft cannot be saved because required data is missing."""


class DraftStateError(CatalogError):
    """Raised when a draft operation is attempted without an open draft."""


class EntrySaveError(CatalogError):
    """Raised when creating or updating a catalog entry fails."""


class EntryNotFoundError(CatalogError, KeyError):
    """Raised when a catalog entry does not exist."""

    def __str__(self) -> str:
        return RuntimeError.__str__(self)


class AssetUploadError(CatalogError):
    """Raised when a single asset upload fails."""


class AssetRemovalError(CatalogError):
    """Raised when a single asset removal fails."""


class StorageError(CatalogError):
    """Raised by the object store when a blob cannot be written or removed."""


class CategoryError(ValidationError):
    """Raised when a category operation is rejected."""
