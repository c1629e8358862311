"""Category endpoints, including delete-with-reassignment."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from ..deps import backend_for
from ..schemas import CategoryCreateRequest, CategoryDeleteRequest

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_categories(request: Request, kind: str = Query(default="designs")):
    categories = backend_for(request, kind).list_categories()
    return {"categories": [category.to_dict() for category in categories]}


@router.post("", status_code=201)
def create_category(request: Request, body: CategoryCreateRequest):
    category = backend_for(request, body.kind).create_category(body.label)
    return {"category": category.to_dict()}


@router.delete("")
def delete_category(request: Request, body: CategoryDeleteRequest):
    reassigned = backend_for(request, body.kind).delete_category(body.id, body.reassign_to)
    return {"ok": True, "reassigned": reassigned, "reassignTo": body.reassign_to}
