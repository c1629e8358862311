"""Domain records shared by the backend, the HTTP client and the dashboard."""

from __future__ import annotations

import itertools
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Final

__all__ = [
    "Asset",
    "AssetRef",
    "AssetRole",
    "CATALOG_KINDS",
    "CatalogEntry",
    "CatalogPage",
    "Category",
    "EntryFields",
    "FilePayload",
    "LOCAL_ID_PREFIX",
    "LocalRef",
    "PendingAsset",
    "RemoteRef",
    "UNCATEGORIZED",
    "new_local_ref",
    "parse_asset_id",
]

CATALOG_KINDS: Final[tuple[str, ...]] = ("designs", "bundles")
"""Catalog entry kinds handled by the system."""

UNCATEGORIZED: Final[str] = "uncategorized"
"""Sentinel category slug that always exists."""

LOCAL_ID_PREFIX: Final[str] = "local-"
"""Prefix used when a local asset reference is rendered as a plain string."""


class AssetRole(str, Enum):
    """Position an asset occupies on its owning catalog entry."""

    THUMBNAIL = "thumbnail"
    GALLERY = "gallery"
    FILE = "file"


@dataclass(frozen=True, slots=True)
class LocalRef:
    """Reference to an asset that only exists inside an unsaved draft."""

    token: str

    @property
    def id(self) -> str:
        return f"{LOCAL_ID_PREFIX}{self.token}"


@dataclass(frozen=True, slots=True)
class RemoteRef:
    """Reference to an asset persisted by the backend."""

    id: str


AssetRef = LocalRef | RemoteRef
"""Tagged union deciding whether an asset is durable."""

_LOCAL_COUNTER = itertools.count(1)
_LOCAL_SESSION = uuid.uuid4().hex[:8]


def new_local_ref() -> LocalRef:
    """Return a process-unique :class:`LocalRef`; tokens are never reused."""

    return LocalRef(f"{_LOCAL_SESSION}-{next(_LOCAL_COUNTER)}")


def parse_asset_id(value: str) -> AssetRef:
    """Turn a wire/UI identifier back into an :class:`AssetRef`.

    This is the only place the string prefix is inspected; everything past
    the boundary dispatches on the reference type.
    """

    text = str(value).strip()
    if not text:
        raise ValueError("Asset identifiers cannot be empty")
    if text.startswith(LOCAL_ID_PREFIX):
        return LocalRef(text[len(LOCAL_ID_PREFIX) :])
    return RemoteRef(text)


@dataclass(frozen=True, slots=True)
class FilePayload:
    """Raw bytes chosen by the user together with their upload metadata."""

    filename: str
    data: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class Asset:
    """A thumbnail, gallery image or downloadable file."""

    ref: AssetRef
    locator: str
    role: AssetRole = AssetRole.GALLERY
    label: str | None = None
    mime: str | None = None
    storage_path: str | None = None

    @property
    def id(self) -> str:
        return self.ref.id

    @property
    def is_durable(self) -> bool:
        return isinstance(self.ref, RemoteRef)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.locator,
            "role": self.role.value,
            "label": self.label,
            "mime_type": self.mime,
            "storage_path": self.storage_path,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, role: AssetRole | None = None) -> Asset:
        resolved_role = role or AssetRole(payload.get("role") or AssetRole.GALLERY.value)
        return cls(
            ref=RemoteRef(str(payload["id"])),
            locator=str(payload.get("url") or payload.get("file_url") or payload.get("image_url") or ""),
            role=resolved_role,
            label=payload.get("label"),
            mime=payload.get("mime_type"),
            storage_path=payload.get("storage_path"),
        )


@dataclass(frozen=True, slots=True)
class PendingAsset:
    """Upload queued inside a draft until its owning entry exists."""

    role: AssetRole
    ref: LocalRef
    payload: FilePayload
    label: str | None = None


@dataclass(frozen=True, slots=True)
class EntryFields:
    """Core, user-editable columns of a catalog entry."""

    title: str = ""
    blurb: str = ""
    price_label: str = ""
    category_id: str = UNCATEGORIZED
    sort_order: int = 0
    active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "blurb": self.blurb,
            "price_label": self.price_label,
            "category_id": self.category_id,
            "sort_order": self.sort_order,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> EntryFields:
        raw_sort = payload.get("sort_order", 0)
        try:
            sort_order = int(raw_sort or 0)
        except (TypeError, ValueError):
            sort_order = 0
        return cls(
            title=str(payload.get("title") or ""),
            blurb=str(payload.get("blurb") or ""),
            price_label=str(payload.get("price_label") or ""),
            category_id=str(payload.get("category_id") or UNCATEGORIZED),
            sort_order=sort_order,
            active=bool(payload.get("active", True)),
        )


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """In-memory representation of a persisted catalog entry."""

    id: str
    kind: str
    title: str
    blurb: str = ""
    price_label: str = ""
    category_id: str = UNCATEGORIZED
    thumbnail: Asset | None = None
    thumb_storage_path: str | None = None
    gallery: tuple[Asset, ...] = ()
    files: tuple[Asset, ...] = ()
    image_count: int = 0
    file_count: int = 0
    sort_order: int = 0
    active: bool = True
    created_at: datetime | None = None

    @property
    def fields(self) -> EntryFields:
        return EntryFields(
            title=self.title,
            blurb=self.blurb,
            price_label=self.price_label,
            category_id=self.category_id,
            sort_order=self.sort_order,
            active=self.active,
        )

    def to_dict(self, *, include_assets: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind,
            **self.fields.to_dict(),
            "thumb_url": self.thumbnail.locator if self.thumbnail else None,
            "thumb_storage_path": self.thumb_storage_path,
            "image_count": self.image_count,
            "file_count": self.file_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_assets:
            payload["images"] = [asset.to_dict() for asset in self.gallery]
            payload["files"] = [asset.to_dict() for asset in self.files]
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CatalogEntry:
        entry_id = str(payload.get("id") or "")
        thumb_url = payload.get("thumb_url")
        thumbnail = None
        if thumb_url:
            thumbnail = Asset(
                ref=RemoteRef(entry_id),
                locator=str(thumb_url),
                role=AssetRole.THUMBNAIL,
                storage_path=payload.get("thumb_storage_path"),
            )
        gallery = tuple(
            Asset.from_dict(item, role=AssetRole.GALLERY) for item in payload.get("images") or ()
        )
        files = tuple(Asset.from_dict(item, role=AssetRole.FILE) for item in payload.get("files") or ())
        created_raw = payload.get("created_at")
        fields = EntryFields.from_dict(payload)
        return cls(
            id=entry_id,
            kind=str(payload.get("kind") or "designs"),
            title=fields.title,
            blurb=fields.blurb,
            price_label=fields.price_label,
            category_id=fields.category_id,
            thumbnail=thumbnail,
            thumb_storage_path=payload.get("thumb_storage_path"),
            gallery=gallery,
            files=files,
            image_count=int(payload.get("image_count", len(gallery))),
            file_count=int(payload.get("file_count", len(files))),
            sort_order=fields.sort_order,
            active=fields.active,
            created_at=datetime.fromisoformat(created_raw) if created_raw else None,
        )


@dataclass(frozen=True, slots=True)
class CatalogPage:
    """One page of catalog entry summaries plus the unpaged total."""

    items: tuple[CatalogEntry, ...]
    total: int


@dataclass(frozen=True, slots=True)
class Category:
    """Labelled category identified by its slug."""

    id: str
    kind: str
    label: str
    sort_order: int = 0
    active: bool = True
    usage_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "label": self.label,
            "sort_order": self.sort_order,
            "is_active": self.active,
            "usage_count": self.usage_count,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Category:
        return cls(
            id=str(payload["id"]),
            kind=str(payload.get("kind") or "designs"),
            label=str(payload.get("label") or payload["id"]),
            sort_order=int(payload.get("sort_order") or 0),
            active=bool(payload.get("is_active", True)),
            usage_count=int(payload.get("usage_count") or 0),
        )
