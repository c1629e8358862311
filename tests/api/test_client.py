"""Tests for the dashboard HTTP client against the real application."""

from __future__ import annotations

import json

import pytest
import requests
from fastapi.testclient import TestClient

from printcatalog.api import create_app
from printcatalog.catalog.cascade import CascadeStatus
from printcatalog.catalog.models import AssetRole, EntryFields, RemoteRef
from printcatalog.client import CatalogClient
from printcatalog.errors import (
    AssetRemovalError,
    AssetUploadError,
    CatalogError,
    EntryNotFoundError,
    EntrySaveError,
)


@pytest.fixture()
def http(app_config, backends):
    with TestClient(create_app(app_config, backends=backends)) as test_client:
        yield test_client


@pytest.fixture()
def client(http) -> CatalogClient:
    return CatalogClient("designs", "http://testserver/", session=http)


class _StubSession:
    """Session returning canned :class:`requests.Response` objects."""

    def __init__(self, status: int = 200, body: dict | None = None, exc: Exception | None = None):
        self.headers: dict[str, str] = {}
        self.status = status
        self.body = body or {}
        self.exc = exc
        self.calls: list[tuple[str, str, dict]] = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.exc is not None:
            raise self.exc
        response = requests.Response()
        response.status_code = self.status
        response._content = json.dumps(self.body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
        return response


def test_client_round_trips_entries_and_assets(client, make_payload) -> None:
    created = client.create_entry(EntryFields(title="Gear", price_label="$2"), make_payload("thumb.png"))
    assert created.id
    assert created.thumbnail is not None

    image = client.upload(created.id, make_payload("gear.png"))
    stl = client.upload(created.id, make_payload("gear.stl", b"solid gear"), role=AssetRole.FILE, label="STL")
    assert isinstance(image.ref, RemoteRef)
    assert stl.role is AssetRole.FILE
    assert stl.label == "STL"

    loaded = client.get_entry(created.id)
    assert [a.id for a in loaded.gallery] == [image.id]
    assert [a.id for a in loaded.files] == [stl.id]

    updated = client.update_entry(created.id, EntryFields(title="Gear v2"))
    assert updated.title == "Gear v2"

    page = client.list_entries()
    assert page.total == 1
    assert page.items[0].image_count == 1

    client.remove(image.id, role=AssetRole.GALLERY)
    client.remove(image.id, role=AssetRole.GALLERY)
    assert client.get_entry(created.id).gallery == ()

    thumb = client.replace_thumbnail(created.id, make_payload("new.png"))
    assert thumb.role is AssetRole.THUMBNAIL

    result = client.delete_entry(created.id)
    assert result.status is CascadeStatus.DELETED
    with pytest.raises(EntryNotFoundError):
        client.get_entry(created.id)


def test_client_categories(client) -> None:
    category = client.create_category("Gears & Cogs")
    assert category.id == "gears-cogs"
    assert [c.id for c in client.list_categories()] == ["uncategorized", "gears-cogs"]
    assert client.delete_category("gears-cogs") == 0


def test_base_url_and_headers() -> None:
    session = _StubSession(body={"items": [], "total": 0})
    client = CatalogClient("bundles", "http://shop.local/api", session=session, token="secret")

    client.list_entries(category="kits", query="bolt", page=3)

    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url == "http://shop.local/api/catalog/bundles"
    assert kwargs["params"] == {"page": 3, "pageSize": 12, "category": "kits", "q": "bolt"}
    assert session.headers["Authorization"] == "Bearer secret"


def test_create_failure_raises_entry_save_error(make_payload) -> None:
    session = _StubSession(status=500, body={"detail": "Insert failed"})
    client = CatalogClient("designs", "http://shop.local/", session=session)

    with pytest.raises(EntrySaveError, match="Insert failed"):
        client.create_entry(EntryFields(title="Broken"), make_payload())


@pytest.mark.parametrize(
    ("call", "error"),
    [
        (lambda c, p: c.upload("1", p), AssetUploadError),
        (lambda c, p: c.remove("image-1"), AssetRemovalError),
        (lambda c, p: c.update_entry("1", EntryFields(title="x")), EntrySaveError),
    ],
)
def test_transport_errors_are_wrapped(call, error, make_payload) -> None:
    session = _StubSession(exc=requests.ConnectionError("connection refused"))
    client = CatalogClient("designs", "http://shop.local/", session=session)

    with pytest.raises(error):
        call(client, make_payload())


def test_thumbnail_assets_cannot_be_removed_individually() -> None:
    client = CatalogClient("designs", "http://shop.local/", session=_StubSession())

    with pytest.raises(CatalogError):
        client.remove("1", role=AssetRole.THUMBNAIL)


def test_failed_row_delete_is_returned_as_a_result() -> None:
    session = _StubSession(
        status=500,
        body={
            "detail": "Failed to delete designs entry",
            "ok": False,
            "id": "7",
            "status": "row_delete_failed",
            "removed": [],
            "failed": [],
            "error": "database is locked",
        },
    )
    client = CatalogClient("designs", "http://shop.local/", session=session)

    result = client.delete_entry("7", "7/thumb.png")

    assert result.status is CascadeStatus.ROW_DELETE_FAILED
    assert not result.ok
    assert result.error == "database is locked"
    assert session.calls[0][2]["json"] == {"id": "7", "thumbStoragePath": "7/thumb.png", "deleteAssets": True}


def test_delete_error_without_cascade_body_raises() -> None:
    session = _StubSession(status=400, body={"detail": "Missing id"})
    client = CatalogClient("designs", "http://shop.local/", session=session)

    with pytest.raises(CatalogError, match="Missing id"):
        client.delete_entry(" ")
