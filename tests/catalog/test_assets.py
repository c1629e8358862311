"""Tests for the asset store adapter: uploads, thumbnail swaps and removal."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from printcatalog.catalog.assets import resolve_locator
from printcatalog.catalog.models import AssetRole, EntryFields, RemoteRef
from printcatalog.db import EntryImageRow
from printcatalog.errors import AssetRemovalError, AssetUploadError, CatalogError, EntryNotFoundError
from printcatalog.storage import StorageLocator


@pytest.fixture()
def entry(designs, make_payload):
    return designs.create_entry(EntryFields(title="Benchy"), make_payload("thumb.png"))


def test_upload_gallery_image_records_row_and_blob(designs, entry, make_payload) -> None:
    asset = designs.upload(entry.id, make_payload("side.png", content_type=None))

    assert isinstance(asset.ref, RemoteRef)
    assert asset.id.startswith("image-")
    assert asset.role is AssetRole.GALLERY
    assert asset.mime == "image/png"
    assert asset.storage_path.startswith(f"{entry.id}/")
    assert designs.store.exists("print-designs", asset.storage_path)


def test_upload_file_keeps_label_and_sniffs_mime(designs, entry, make_payload) -> None:
    asset = designs.upload(
        entry.id,
        make_payload("benchy.3mf", b"PK\x03\x04 fake archive"),
        role=AssetRole.FILE,
        label="  ",
    )

    assert asset.id.startswith("file-")
    assert asset.label == "File"
    assert asset.mime == "application/octet-stream" or asset.mime.startswith("model/")


def test_upload_for_unknown_entry_is_rejected(designs, make_payload) -> None:
    with pytest.raises(EntryNotFoundError):
        designs.upload("12345", make_payload())

    assert designs.store.list_objects("print-designs") == []


def test_empty_payload_is_rejected(designs, entry, make_payload) -> None:
    with pytest.raises(AssetUploadError):
        designs.upload(entry.id, make_payload("empty.png", b""))


def test_replace_thumbnail_swaps_blob(designs, entry, make_payload) -> None:
    old_path = entry.thumb_storage_path

    asset = designs.replace_thumbnail(entry.id, make_payload("new-thumb.png"))

    assert asset.role is AssetRole.THUMBNAIL
    assert asset.id == entry.id
    assert not designs.store.exists("print-designs", old_path)
    assert designs.store.exists("print-designs", asset.storage_path)
    reloaded = designs.get_entry(entry.id)
    assert reloaded.thumbnail.locator == asset.locator
    assert reloaded.thumb_storage_path == asset.storage_path


def test_remove_is_idempotent(designs, entry, make_payload) -> None:
    asset = designs.upload(entry.id, make_payload())

    designs.remove(asset.id, role=AssetRole.GALLERY)
    designs.remove(asset.id, role=AssetRole.GALLERY)
    designs.remove("image-999999", role=AssetRole.GALLERY)
    designs.remove("garbage", role=AssetRole.FILE)

    assert designs.get_entry(entry.id).gallery == ()
    assert not designs.store.exists("print-designs", asset.storage_path)


def test_remove_tolerates_missing_blob(designs, entry, make_payload) -> None:
    asset = designs.upload(entry.id, make_payload("f.stl", b"solid f"), role=AssetRole.FILE)
    designs.store.remove("print-designs", [asset.storage_path])

    designs.remove(asset.id, role=AssetRole.FILE)

    assert designs.get_entry(entry.id).files == ()


def test_remove_resolves_url_only_rows_in_other_buckets(designs, entry) -> None:
    designs.store.upload("legacy", "old/pic.png", b"legacy bytes")
    url = designs.store.public_url("legacy", "old/pic.png")
    with designs.repository._session_factory() as session, session.begin():
        row = EntryImageRow(entry_id=int(entry.id), image_url=url, storage_path=None)
        session.add(row)
        session.flush()
        asset_id = f"image-{row.id}"

    designs.remove(asset_id, role=AssetRole.GALLERY)

    assert not designs.store.exists("legacy", "old/pic.png")


def test_resolve_locator_prefers_storage_path() -> None:
    assert resolve_locator("1/a.png", "https://x/storage/v1/object/public/other/1/a.png", default_bucket="b") == (
        StorageLocator("b", "1/a.png")
    )
    assert resolve_locator(None, "https://x/storage/v1/object/public/other/1/a.png", default_bucket="b") == (
        StorageLocator("other", "1/a.png")
    )
    assert resolve_locator(None, "https://x/plain.png", default_bucket="b") is None


def test_database_errors_become_asset_errors(designs, entry, make_payload, monkeypatch) -> None:
    def _locked(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(designs.repository, "find_child", _locked)
    monkeypatch.setattr(designs.repository, "exists", _locked)

    with pytest.raises(AssetRemovalError):
        designs.remove("image-1", role=AssetRole.GALLERY)
    with pytest.raises(AssetUploadError):
        designs.upload(entry.id, make_payload())
    monkeypatch.setattr(designs.repository, "get_entry", _locked)
    with pytest.raises(CatalogError):
        designs.get_entry(entry.id)
