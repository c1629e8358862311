"""Request bodies accepted by the JSON endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..catalog.models import UNCATEGORIZED, EntryFields

__all__ = [
    "AssetRemoveRequest",
    "CategoryCreateRequest",
    "CategoryDeleteRequest",
    "EntryDeleteRequest",
    "EntryUpdateRequest",
]


class EntryUpdateRequest(BaseModel):
    """Core columns written by ``PUT /catalog/{kind}/{id}``."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    blurb: str = ""
    price_label: str = Field(default="", alias="priceLabel")
    category_id: str = Field(default=UNCATEGORIZED, alias="categoryId")
    sort_order: int = Field(default=0, alias="sortOrder")
    active: bool = True

    def to_fields(self) -> EntryFields:
        return EntryFields(
            title=self.title,
            blurb=self.blurb,
            price_label=self.price_label,
            category_id=self.category_id or UNCATEGORIZED,
            sort_order=self.sort_order,
            active=self.active,
        )


class EntryDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    thumb_storage_path: str | None = Field(default=None, alias="thumbStoragePath")
    delete_assets: bool = Field(default=True, alias="deleteAssets")


class AssetRemoveRequest(BaseModel):
    id: str


class CategoryCreateRequest(BaseModel):
    kind: str = "designs"
    label: str


class CategoryDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: str = "designs"
    id: str
    reassign_to: str = Field(default=UNCATEGORIZED, alias="reassignTo")
