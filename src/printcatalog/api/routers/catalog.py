"""Owner-facing catalog endpoints: entries and their assets."""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from ...catalog.models import UNCATEGORIZED, AssetRole, EntryFields
from ...catalog.repository import DEFAULT_PAGE_SIZE
from ..deps import backend_for, get_app_config, read_upload
from ..schemas import AssetRemoveRequest, EntryDeleteRequest, EntryUpdateRequest

router = APIRouter(prefix="/catalog", tags=["catalog"])

logger = logging.getLogger(__name__)


@router.get("/{kind}")
def list_entries(
    request: Request,
    kind: str,
    category: str | None = Query(default=None),
    q: str | None = Query(default=None),
    page: int = Query(default=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, alias="pageSize"),
    active_only: bool = Query(default=False, alias="activeOnly"),
):
    backend = backend_for(request, kind)
    result = backend.list_entries(
        category=category,
        query=q,
        page=page,
        page_size=page_size,
        active_only=active_only,
    )
    return {
        "items": [item.to_dict(include_assets=False) for item in result.items],
        "total": result.total,
    }


@router.get("/{kind}/{entry_id}")
def get_entry(request: Request, kind: str, entry_id: str):
    entry = backend_for(request, kind).get_entry(entry_id)
    return {"item": entry.to_dict()}


@router.post("/{kind}", status_code=201)
def create_entry(
    request: Request,
    kind: str,
    title: str = Form(default=""),
    blurb: str = Form(default=""),
    price_label: str = Form(default=""),
    category_id: str = Form(default=UNCATEGORIZED),
    sort_order: int = Form(default=0),
    active: bool = Form(default=True),
    file: UploadFile | None = File(default=None),
):
    backend = backend_for(request, kind)
    if not title.strip():
        raise HTTPException(status_code=400, detail="Missing title")
    payload = read_upload(file, limit=get_app_config(request).max_file_bytes)
    fields = EntryFields(
        title=title.strip(),
        blurb=blurb,
        price_label=price_label,
        category_id=category_id or UNCATEGORIZED,
        sort_order=sort_order,
        active=active,
    )
    entry = backend.create_entry(fields, payload)
    return {"item": entry.to_dict()}


@router.put("/{kind}/{entry_id}")
def update_entry(request: Request, kind: str, entry_id: str, body: EntryUpdateRequest):
    entry = backend_for(request, kind).update_entry(entry_id, body.to_fields())
    return {"item": entry.to_dict()}


@router.delete("/{kind}")
def delete_entry(request: Request, kind: str, body: EntryDeleteRequest):
    backend = backend_for(request, kind)
    entry_id = body.id.strip()
    if not entry_id:
        raise HTTPException(status_code=400, detail="Missing id")
    result = backend.delete_entry(
        entry_id,
        body.thumb_storage_path,
        delete_assets=body.delete_assets,
    )
    if not result.ok:
        return JSONResponse(
            status_code=500,
            content={"detail": f"Failed to delete {kind} entry", **result.to_dict()},
        )
    return result.to_dict()


@router.post("/{kind}/add-image")
def add_image(
    request: Request,
    kind: str,
    owner_id: str = Form(default=""),
    file: UploadFile | None = File(default=None),
):
    return _add_asset(request, kind, owner_id, file, AssetRole.GALLERY)


@router.post("/{kind}/add-file")
def add_file(
    request: Request,
    kind: str,
    owner_id: str = Form(default=""),
    label: str = Form(default=""),
    file: UploadFile | None = File(default=None),
):
    return _add_asset(request, kind, owner_id, file, AssetRole.FILE, label=label)


@router.post("/{kind}/update-thumb")
def update_thumbnail(
    request: Request,
    kind: str,
    owner_id: str = Form(default=""),
    file: UploadFile | None = File(default=None),
):
    return _add_asset(request, kind, owner_id, file, AssetRole.THUMBNAIL)


@router.post("/{kind}/remove-image")
def remove_image(request: Request, kind: str, body: AssetRemoveRequest):
    return _remove_asset(request, kind, body, AssetRole.GALLERY)


@router.post("/{kind}/remove-file")
def remove_file(request: Request, kind: str, body: AssetRemoveRequest):
    return _remove_asset(request, kind, body, AssetRole.FILE)


def _add_asset(
    request: Request,
    kind: str,
    owner_id: str,
    upload: UploadFile | None,
    role: AssetRole,
    *,
    label: str | None = None,
):
    backend = backend_for(request, kind)
    owner_id = owner_id.strip()
    if not owner_id:
        raise HTTPException(status_code=400, detail="Missing owner_id")
    payload = read_upload(upload, limit=get_app_config(request).max_file_bytes)
    if role is AssetRole.THUMBNAIL:
        asset = backend.replace_thumbnail(owner_id, payload)
    else:
        asset = backend.upload(owner_id, payload, role=role, label=label)
    return {"asset": asset.to_dict()}


def _remove_asset(request: Request, kind: str, body: AssetRemoveRequest, role: AssetRole):
    backend = backend_for(request, kind)
    asset_id = body.id.strip()
    if not asset_id:
        raise HTTPException(status_code=400, detail="Missing id")
    backend.remove(asset_id, role=role)
    return {"ok": True}
