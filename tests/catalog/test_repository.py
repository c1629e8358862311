"""Tests covering the catalog entry repository through the backend."""

from __future__ import annotations

import pytest

from printcatalog.catalog.models import UNCATEGORIZED, AssetRole, EntryFields
from printcatalog.errors import EntryNotFoundError, ValidationError


def _create(backend, make_payload, title: str, **overrides):
    return backend.create_entry(EntryFields(title=title, **overrides), make_payload())


def test_create_entry_stores_row_and_thumbnail(designs, make_payload) -> None:
    entry = _create(designs, make_payload, "Articulated Dragon", blurb="Flexi print", price_label="$12")

    assert entry.id
    assert entry.kind == "designs"
    assert entry.thumbnail is not None
    assert entry.thumbnail.locator.startswith("http://testserver/storage/v1/object/public/print-designs/")
    assert entry.thumb_storage_path.startswith(f"{entry.id}/")
    assert designs.store.exists("print-designs", entry.thumb_storage_path)
    assert entry.gallery == ()
    assert entry.files == ()


def test_create_requires_title_and_thumbnail(designs, make_payload) -> None:
    with pytest.raises(ValidationError):
        designs.create_entry(EntryFields(title="   "), make_payload())
    with pytest.raises(ValidationError):
        designs.create_entry(EntryFields(title="Vase"), None)

    assert designs.list_entries().total == 0


def test_unknown_category_falls_back_to_uncategorized(designs, make_payload) -> None:
    entry = _create(designs, make_payload, "Lamp", category_id="does-not-exist")

    assert entry.category_id == UNCATEGORIZED


def test_get_entry_includes_children_in_order(designs, make_payload) -> None:
    entry = _create(designs, make_payload, "Planter")
    first = designs.upload(entry.id, make_payload("first.png"))
    second = designs.upload(entry.id, make_payload("second.png"))
    stl = designs.upload(
        entry.id, make_payload("planter.stl", b"solid planter"), role=AssetRole.FILE, label="STL"
    )

    loaded = designs.get_entry(entry.id)

    assert [asset.id for asset in loaded.gallery] == [first.id, second.id]
    assert [asset.id for asset in loaded.files] == [stl.id]
    assert loaded.files[0].label == "STL"
    assert loaded.image_count == 2
    assert loaded.file_count == 1


def test_get_missing_entry_raises(designs) -> None:
    with pytest.raises(EntryNotFoundError):
        designs.get_entry("404")
    with pytest.raises(KeyError):
        designs.get_entry("not-a-number")


def test_entries_are_scoped_per_kind(designs, bundles, make_payload) -> None:
    entry = _create(designs, make_payload, "Design only")

    assert bundles.repository.find_entry(entry.id) is None
    assert bundles.list_entries().total == 0


def test_list_entries_filters_pages_and_counts(designs, make_payload) -> None:
    designs.create_category("Toys")
    for index in range(5):
        _create(designs, make_payload, f"Toy {index}", category_id="toys", sort_order=index)
    _create(designs, make_payload, "Garden gnome", blurb="A very small toy", sort_order=10)
    hidden = _create(designs, make_payload, "Hidden", active=False, sort_order=11)
    designs.upload(hidden.id, make_payload())

    page = designs.list_entries(category="toys", page=2, page_size=2)
    assert page.total == 5
    assert [item.title for item in page.items] == ["Toy 2", "Toy 3"]

    assert designs.list_entries(category="all").total == 7
    assert [item.title for item in designs.list_entries(query="GNOME").items] == ["Garden gnome"]
    assert designs.list_entries(query="toy").total == 6
    assert designs.list_entries(active_only=True).total == 6

    summary = next(item for item in designs.list_entries().items if item.id == hidden.id)
    assert summary.image_count == 1
    assert summary.gallery == ()


def test_page_size_is_clamped(designs, make_payload) -> None:
    _create(designs, make_payload, "One")
    _create(designs, make_payload, "Two")

    assert len(designs.list_entries(page_size=0).items) == 1
    assert len(designs.list_entries(page_size=500, page=-3).items) == 2


def test_update_entry_overwrites_core_fields(designs, make_payload) -> None:
    entry = _create(designs, make_payload, "Old title")

    updated = designs.update_entry(
        entry.id,
        EntryFields(title="New title", blurb="b", price_label="$5", sort_order=4, active=False),
    )

    assert updated.title == "New title"
    assert updated.price_label == "$5"
    assert updated.sort_order == 4
    assert updated.active is False
    assert updated.thumbnail == entry.thumbnail


def test_update_missing_entry_raises(designs) -> None:
    with pytest.raises(EntryNotFoundError):
        designs.update_entry("999", EntryFields(title="Ghost"))
