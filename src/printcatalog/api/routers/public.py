"""Read-only storefront endpoints and public object downloads."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request, Response

from ...catalog.repository import DEFAULT_PAGE_SIZE
from ...errors import StorageError
from ..deps import backend_for

router = APIRouter(tags=["public"])


@router.get("/public/catalog/{kind}")
def list_public_entries(
    request: Request,
    kind: str,
    category: str | None = Query(default=None),
    q: str | None = Query(default=None),
    page: int = Query(default=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, alias="pageSize"),
):
    result = backend_for(request, kind).list_entries(
        category=category,
        query=q,
        page=page,
        page_size=page_size,
        active_only=True,
    )
    return {
        "items": [item.to_dict(include_assets=False) for item in result.items],
        "total": result.total,
    }


@router.get("/public/catalog/{kind}/{entry_id}")
def get_public_entry(request: Request, kind: str, entry_id: str):
    entry = backend_for(request, kind).repository.find_entry(entry_id)
    if entry is None or not entry.active:
        raise HTTPException(status_code=404, detail="Not found")
    return {"item": entry.to_dict()}


@router.get("/public/categories/{kind}")
def list_public_categories(request: Request, kind: str):
    categories = backend_for(request, kind).list_categories()
    return {"categories": [category.to_dict() for category in categories if category.active]}


@router.get("/storage/v1/object/public/{bucket}/{path:path}")
def download_object(request: Request, bucket: str, path: str):
    store = request.app.state.store
    try:
        data = store.read(bucket, path)
    except StorageError as exc:
        raise HTTPException(status_code=404, detail="Object not found") from exc
    return Response(content=data, media_type=store.guess_content_type(path))
