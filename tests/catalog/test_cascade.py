"""Tests for the deletion cascade ordering and best-effort cleanup."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from printcatalog.catalog.cascade import CascadeStatus, group_by_bucket
from printcatalog.catalog.models import AssetRole, EntryFields
from printcatalog.db import CatalogEntryRow, EntryFileRow, EntryImageRow
from printcatalog.errors import StorageError
from printcatalog.storage import StorageLocator


@pytest.fixture()
def populated(bundles, make_payload):
    entry = bundles.create_entry(EntryFields(title="Starter bundle"), make_payload("thumb.png"))
    bundles.upload(entry.id, make_payload("a.png"))
    bundles.upload(entry.id, make_payload("b.png"))
    bundles.upload(entry.id, make_payload("kit.zip", b"PK zip"), role=AssetRole.FILE, label="Kit")
    return bundles.get_entry(entry.id)


@pytest.fixture()
def store_calls(bundles, monkeypatch):
    """Record every ``remove`` call issued against the object store."""

    calls: list[tuple[str, list[str]]] = []
    original = bundles.store.remove

    def _recording_remove(bucket, paths):
        paths = list(paths)
        calls.append((bucket, paths))
        return original(bucket, paths)

    monkeypatch.setattr(bundles.store, "remove", _recording_remove)
    return calls


def _row_count(backend, model) -> int:
    with backend.repository._session_factory() as session:
        return len(session.scalars(select(model)).all())


def test_delete_removes_rows_and_blobs(bundles, populated) -> None:
    result = bundles.delete_entry(populated.id)

    assert result.status is CascadeStatus.DELETED
    assert result.ok
    assert result.partial_cleanup_failure == ()
    assert len(result.removed) == 4
    assert bundles.store.list_objects("bundles") == []
    assert _row_count(bundles, CatalogEntryRow) == 0
    assert _row_count(bundles, EntryImageRow) == 0
    assert _row_count(bundles, EntryFileRow) == 0


def test_delete_twice_is_idempotent(bundles, populated, store_calls) -> None:
    first = bundles.delete_entry(populated.id)
    calls_after_first = list(store_calls)
    second = bundles.delete_entry(populated.id)

    assert first.ok and second.ok
    assert second.status is CascadeStatus.ALREADY_ABSENT
    assert store_calls == calls_after_first


def test_children_are_deleted_before_parent(bundles, populated, monkeypatch) -> None:
    order: list[str] = []
    repository = bundles.repository
    delete_children = repository.delete_children
    delete_row = repository.delete_row

    def _children(entry_id):
        order.append("children")
        return delete_children(entry_id)

    def _row(entry_id):
        order.append("row")
        return delete_row(entry_id)

    monkeypatch.setattr(repository, "delete_children", _children)
    monkeypatch.setattr(repository, "delete_row", _row)

    bundles.delete_entry(populated.id)

    assert order == ["children", "row"]


def test_row_delete_failure_skips_storage(bundles, populated, store_calls, monkeypatch) -> None:
    def _fail(entry_id):
        raise OperationalError("DELETE FROM catalog_entries", {}, Exception("database is locked"))

    monkeypatch.setattr(bundles.repository, "delete_row", _fail)

    result = bundles.delete_entry(populated.id)

    assert result.status is CascadeStatus.ROW_DELETE_FAILED
    assert not result.ok
    assert store_calls == []
    assert bundles.store.exists("bundles", populated.thumb_storage_path)


def test_storage_failure_is_reported_not_raised(bundles, populated, monkeypatch) -> None:
    def _broken_remove(bucket, paths):
        raise StorageError(f"bucket {bucket} unavailable")

    monkeypatch.setattr(bundles.store, "remove", _broken_remove)

    result = bundles.delete_entry(populated.id)

    assert result.ok
    assert result.status is CascadeStatus.PARTIAL_CLEANUP_FAILURE
    assert len(result.partial_cleanup_failure) == 4
    assert {locator.bucket for locator in result.partial_cleanup_failure} == {"bundles"}
    assert bundles.repository.find_entry(populated.id) is None


def test_thumbnail_in_other_bucket_gets_its_own_removal(bundles, make_payload, store_calls) -> None:
    entry = bundles.create_entry(EntryFields(title="Legacy"), make_payload("thumb.png"))
    bundles.store.upload("print-designs", "legacy/thumb.png", b"old")
    legacy_url = bundles.store.public_url("print-designs", "legacy/thumb.png")
    with bundles.repository._session_factory() as session, session.begin():
        row = session.get(CatalogEntryRow, int(entry.id))
        row.thumb_url = legacy_url
        row.thumb_storage_path = None
    bundles.store.remove("bundles", [entry.thumb_storage_path])
    store_calls.clear()

    result = bundles.delete_entry(entry.id)

    assert store_calls == [("print-designs", ["legacy/thumb.png"])]
    assert result.removed == (StorageLocator("print-designs", "legacy/thumb.png"),)


def test_explicit_thumb_path_is_used(bundles, populated, store_calls) -> None:
    bundles.delete_entry(populated.id, thumb_storage_path=populated.thumb_storage_path)

    removed_paths = [path for _bucket, paths in store_calls for path in paths]
    assert populated.thumb_storage_path in removed_paths


def test_keep_assets_deletes_rows_only(bundles, populated, store_calls) -> None:
    result = bundles.delete_entry(populated.id, delete_assets=False)

    assert result.status is CascadeStatus.DELETED
    assert store_calls == []
    assert bundles.store.exists("bundles", populated.thumb_storage_path)


def test_group_by_bucket_keeps_order_and_drops_repeats() -> None:
    grouped = group_by_bucket(
        [
            StorageLocator("a", "1"),
            StorageLocator("b", "2"),
            StorageLocator("a", "3"),
            StorageLocator("a", "1"),
        ]
    )

    assert grouped == {"a": ["1", "3"], "b": ["2"]}
