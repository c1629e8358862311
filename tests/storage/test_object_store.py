"""Tests for the filesystem object store and public URL parsing."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from printcatalog.errors import StorageError
from printcatalog.storage import ObjectStore, StorageLocator, build_object_path, parse_public_url


@pytest.fixture()
def store(tmp_path: Path) -> ObjectStore:
    return ObjectStore(tmp_path / "storage", public_base_url="https://shop.example.com/")


def test_upload_read_and_public_url(store: ObjectStore) -> None:
    locator = store.upload("print-designs", "7/123-cube.stl", b"solid cube")

    assert locator == StorageLocator("print-designs", "7/123-cube.stl")
    assert store.read("print-designs", "7/123-cube.stl") == b"solid cube"
    assert store.exists("print-designs", "7/123-cube.stl")
    assert (
        store.public_url("print-designs", "7/123-cube.stl")
        == "https://shop.example.com/storage/v1/object/public/print-designs/7/123-cube.stl"
    )


def test_upload_refuses_to_overwrite_without_upsert(store: ObjectStore) -> None:
    store.upload("bundles", "1/a.png", b"one")

    with pytest.raises(StorageError):
        store.upload("bundles", "1/a.png", b"two")

    store.upload("bundles", "1/a.png", b"two", upsert=True)
    assert store.read("bundles", "1/a.png") == b"two"


def test_remove_skips_missing_objects_and_prunes_directories(store: ObjectStore) -> None:
    store.upload("bundles", "4/x.png", b"x")

    removed = store.remove("bundles", ["4/x.png", "4/missing.png"])

    assert removed == ["4/x.png"]
    assert store.list_objects("bundles") == []
    assert not (store.root / "bundles" / "4").exists()
    assert store.remove("bundles", ["4/x.png"]) == []


@pytest.mark.parametrize("path", ["../escape.txt", "a/../../b", ""])
def test_invalid_paths_are_rejected(store: ObjectStore, path: str) -> None:
    with pytest.raises(StorageError):
        store.upload("bundles", path, b"data")


def test_invalid_bucket_is_rejected(store: ObjectStore) -> None:
    with pytest.raises(StorageError):
        store.upload("../other", "a.txt", b"data")


def test_parse_public_url_recovers_bucket_and_path() -> None:
    parsed = parse_public_url(
        "https://abc.supabase.co/storage/v1/object/public/print-designs/12/1700000000-my%20part.stl"
    )

    assert parsed == StorageLocator("print-designs", "12/1700000000-my part.stl")


@pytest.mark.parametrize(
    "url",
    [
        None,
        "",
        "https://example.com/images/cat.png",
        "https://example.com/storage/v1/object/public/bucket-only",
    ],
)
def test_parse_public_url_rejects_foreign_urls(url) -> None:
    assert parse_public_url(url) is None


def test_build_object_path_is_owner_scoped() -> None:
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)

    path = build_object_path("42", "My Model v2.stl", now=moment)

    owner, name = path.split("/")
    assert owner == "42"
    assert name.startswith(f"{int(moment.timestamp() * 1000)}-")
    assert name.endswith("-My-Model-v2.stl")
    assert build_object_path("42", "x.png") != build_object_path("42", "x.png")
