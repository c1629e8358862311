"""HTTP client used by the dashboard to talk to the catalog endpoints."""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import requests

from .catalog.cascade import CascadeResult
from .catalog.models import (
    UNCATEGORIZED,
    Asset,
    AssetRole,
    CatalogEntry,
    CatalogPage,
    Category,
    EntryFields,
    FilePayload,
)
from .config import get_config
from .errors import (
    AssetRemovalError,
    AssetUploadError,
    CatalogError,
    CategoryError,
    EntryNotFoundError,
    EntrySaveError,
)

__all__ = ["CatalogClient"]

logger = logging.getLogger(__name__)

_UPLOAD_ENDPOINTS = {
    AssetRole.GALLERY: "add-image",
    AssetRole.FILE: "add-file",
    AssetRole.THUMBNAIL: "update-thumb",
}
_REMOVE_ENDPOINTS = {
    AssetRole.GALLERY: "remove-image",
    AssetRole.FILE: "remove-file",
}


class CatalogClient:
    """Entry and asset gateway for one catalog kind over HTTP."""

    def __init__(
        self,
        kind: str,
        base_url: str | None = None,
        *,
        session: Any | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ) -> None:
        config = get_config()
        self.kind = kind
        self.base_url = base_url or config.resolved_api_base_url
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.session = session if session is not None else requests.Session()
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})
        self.session.headers.update({"User-Agent": "printcatalog dashboard"})

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------
    def list_entries(
        self,
        *,
        category: str | None = None,
        query: str | None = None,
        page: int = 1,
        page_size: int = 12,
        active_only: bool = False,
    ) -> CatalogPage:
        params: dict[str, Any] = {"page": page, "pageSize": page_size}
        if category:
            params["category"] = category
        if query:
            params["q"] = query
        if active_only:
            params["activeOnly"] = "true"
        body = self._request_json("GET", f"catalog/{self.kind}", CatalogError, params=params)
        items = tuple(CatalogEntry.from_dict(item) for item in body.get("items") or ())
        return CatalogPage(items=items, total=int(body.get("total") or 0))

    def get_entry(self, entry_id: str) -> CatalogEntry:
        body = self._request_json("GET", f"catalog/{self.kind}/{entry_id}", CatalogError)
        return CatalogEntry.from_dict(body["item"])

    def create_entry(self, fields: EntryFields, thumbnail: FilePayload) -> CatalogEntry:
        body = self._request_json(
            "POST",
            f"catalog/{self.kind}",
            EntrySaveError,
            data=_form_fields(fields),
            files={"file": _file_tuple(thumbnail)},
        )
        return CatalogEntry.from_dict(body["item"])

    def update_entry(self, entry_id: str, fields: EntryFields) -> CatalogEntry:
        body = self._request_json(
            "PUT",
            f"catalog/{self.kind}/{entry_id}",
            EntrySaveError,
            json=fields.to_dict(),
        )
        return CatalogEntry.from_dict(body["item"])

    def delete_entry(
        self,
        entry_id: str,
        thumb_storage_path: str | None = None,
        *,
        delete_assets: bool = True,
    ) -> CascadeResult:
        """Run the deletion cascade remotely.

        A failed row delete is answered with an error status and a cascade
        body; that body is decoded like any other outcome.
        """

        body = self._request_json(
            "DELETE",
            f"catalog/{self.kind}",
            CatalogError,
            result_key="status",
            json={
                "id": entry_id,
                "thumbStoragePath": thumb_storage_path,
                "deleteAssets": delete_assets,
            },
        )
        return CascadeResult.from_dict(body)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------
    def upload(
        self,
        owner_id: str,
        payload: FilePayload,
        *,
        role: AssetRole = AssetRole.GALLERY,
        label: str | None = None,
    ) -> Asset:
        data = {"owner_id": owner_id}
        if role is AssetRole.FILE:
            data["label"] = label or ""
        body = self._request_json(
            "POST",
            f"catalog/{self.kind}/{_UPLOAD_ENDPOINTS[role]}",
            AssetUploadError,
            data=data,
            files={"file": _file_tuple(payload)},
        )
        return Asset.from_dict(body["asset"], role=role)

    def replace_thumbnail(self, owner_id: str, payload: FilePayload) -> Asset:
        return self.upload(owner_id, payload, role=AssetRole.THUMBNAIL)

    def remove(self, asset_id: str, *, role: AssetRole = AssetRole.GALLERY) -> None:
        endpoint = _REMOVE_ENDPOINTS.get(role)
        if endpoint is None:
            raise AssetRemovalError(f"{role.value} assets cannot be removed individually")
        self._request_json(
            "POST",
            f"catalog/{self.kind}/{endpoint}",
            AssetRemovalError,
            json={"id": asset_id},
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def list_categories(self) -> list[Category]:
        body = self._request_json("GET", "categories", CategoryError, params={"kind": self.kind})
        return [Category.from_dict(item) for item in body.get("categories") or ()]

    def create_category(self, label: str) -> Category:
        body = self._request_json(
            "POST",
            "categories",
            CategoryError,
            json={"kind": self.kind, "label": label},
        )
        return Category.from_dict(body["category"])

    def delete_category(self, slug: str, reassign_to: str | None = UNCATEGORIZED) -> int:
        body = self._request_json(
            "DELETE",
            "categories",
            CategoryError,
            json={"kind": self.kind, "id": slug, "reassignTo": reassign_to or UNCATEGORIZED},
        )
        return int(body.get("reassigned") or 0)

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------
    def _make_request(self, method: str, endpoint: str, **kwargs: Any):
        """Make an API request to the catalog service."""

        url = urllib.parse.urljoin(self.base_url, endpoint)
        kwargs.setdefault("timeout", self.timeout)
        return self.session.request(method, url, **kwargs)

    def _request_json(
        self,
        method: str,
        endpoint: str,
        error_type: type[CatalogError],
        *,
        result_key: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = self._make_request(method, endpoint, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, endpoint, exc)
            raise error_type(f"{method} {endpoint} failed: {exc}") from exc

        if response.status_code >= 400:
            if result_key is not None:
                body = _json_object(response)
                if body is not None and result_key in body:
                    logger.warning(
                        "%s %s -> %s: %s", method, endpoint, response.status_code, body[result_key]
                    )
                    return body
            detail = _error_detail(response)
            if response.status_code == 404 and method == "GET":
                raise EntryNotFoundError(detail)
            logger.error("%s %s -> %s: %s", method, endpoint, response.status_code, detail)
            raise error_type(detail)
        return response.json()


def _form_fields(fields: EntryFields) -> dict[str, str]:
    return {
        "title": fields.title,
        "blurb": fields.blurb,
        "price_label": fields.price_label,
        "category_id": fields.category_id or UNCATEGORIZED,
        "sort_order": str(fields.sort_order),
        "active": "true" if fields.active else "false",
    }


def _file_tuple(payload: FilePayload) -> tuple[str, bytes, str]:
    return (payload.filename, payload.data, payload.content_type or "application/octet-stream")


def _json_object(response: Any) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error_detail(response: Any) -> str:
    body = _json_object(response)
    if body is None:
        return response.text or f"HTTP {response.status_code}"
    if body.get("detail"):
        return str(body["detail"])
    return f"HTTP {response.status_code}"
