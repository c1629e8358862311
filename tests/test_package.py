"""Basic smoke tests for the printcatalog package."""

from __future__ import annotations

import importlib


def test_package_importable() -> None:
    """Ensure that the top-level package can be imported."""

    module = importlib.import_module("printcatalog")
    assert module.__version__ == "0.1.0"


def test_media_module_imports_before_catalog() -> None:
    module = importlib.import_module("printcatalog.media")
    assert module.PREVIEW_SCHEME == "preview://"
