"""Request dependencies resolving the backend of a catalog kind."""

from __future__ import annotations

from collections.abc import Mapping

from fastapi import HTTPException, Request, UploadFile

from ..catalog.models import FilePayload
from ..catalog.service import CatalogBackend
from ..config import AppConfig

__all__ = ["backend_for", "get_app_config", "read_upload"]


def _backends(request: Request) -> Mapping[str, CatalogBackend]:
    return request.app.state.backends


def backend_for(request: Request, kind: str) -> CatalogBackend:
    backend = _backends(request).get(kind)
    if backend is None:
        raise HTTPException(status_code=404, detail=f"Unknown catalog kind: {kind}")
    return backend


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def read_upload(upload: UploadFile | None, *, limit: int | None = None) -> FilePayload:
    """Read a multipart upload fully into a :class:`FilePayload`."""

    if upload is None:
        raise HTTPException(status_code=400, detail="Missing file")
    data = upload.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Missing file")
    if limit is not None and len(data) > limit:
        raise HTTPException(status_code=413, detail=f"{upload.filename} exceeds the upload limit")
    return FilePayload(
        filename=upload.filename or "upload.bin",
        data=data,
        content_type=upload.content_type,
    )
