"""Pytest configuration helpers for printcatalog tests."""

from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

# Ensure the source directory is importable without requiring an editable install.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

MEMORY_DATABASE_URL = "sqlite+pysqlite:///:memory:"
PUBLIC_BASE_URL = "http://testserver"


@pytest.fixture(autouse=True)
def reset_app_config() -> None:
    """Ensure each test runs with the default application configuration."""

    from printcatalog.config import configure

    configure()
    yield
    configure()


@pytest.fixture()
def app_config(tmp_path: Path):
    """Configuration rooted in a temporary directory with an in-memory database."""

    from printcatalog.config import configure

    return configure(
        data_root=tmp_path / "data",
        database_url=MEMORY_DATABASE_URL,
        public_base_url=PUBLIC_BASE_URL,
        api_base_url=f"{PUBLIC_BASE_URL}/",
    )


@pytest.fixture()
def backends(app_config):
    """One backend per catalog kind sharing a fresh database and object store."""

    from printcatalog.catalog.service import build_backends
    from printcatalog.db import get_engine

    engine = get_engine(MEMORY_DATABASE_URL)
    try:
        yield build_backends(app_config, engine=engine)
    finally:
        engine.dispose()


@pytest.fixture()
def designs(backends):
    return backends["designs"]


@pytest.fixture()
def bundles(backends):
    return backends["bundles"]


@pytest.fixture()
def png_bytes() -> bytes:
    """A small but valid PNG image."""

    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (32, 24), (200, 40, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def make_payload(png_bytes):
    """Factory building :class:`FilePayload` objects; images by default."""

    from printcatalog.catalog.models import FilePayload

    def _make(filename: str = "image.png", data: bytes | None = None, content_type: str | None = None):
        if data is None:
            data = png_bytes
            content_type = content_type or "image/png"
        return FilePayload(filename=filename, data=data, content_type=content_type)

    return _make
