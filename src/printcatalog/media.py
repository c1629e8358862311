"""Media helpers: MIME sniffing and revocable local previews.

Previews stand in for an asset's locator while the bytes still live only in
the dashboard process.  A preview locator looks like
``preview://<token>/<filename>`` and stays resolvable until it is released.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import threading
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from PIL import Image, UnidentifiedImageError

from .utils.paths import safe_filename

if TYPE_CHECKING:
    from .catalog.models import FilePayload

__all__ = [
    "DEFAULT_PREVIEW_SIZE",
    "FALLBACK_MIME",
    "PREVIEW_SCHEME",
    "PreviewRegistry",
    "PreviewResult",
    "detect_mime",
    "probe_image",
    "render_preview",
]

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_SIZE: tuple[int, int] = (512, 512)
"""Bounding box used when rendering local image previews."""

PREVIEW_SCHEME = "preview://"
FALLBACK_MIME = "application/octet-stream"


@dataclass(slots=True)
class PreviewResult:
    """Rendered preview bytes plus the dimensions of the source image."""

    image_bytes: bytes
    mime: str
    source_size: tuple[int, int]


def probe_image(data: bytes) -> str | None:
    """Return the MIME type of *data* when Pillow recognises it as an image."""

    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError):
        return None
    if not image_format:
        return None
    return Image.MIME.get(image_format.upper())


def detect_mime(payload: FilePayload) -> str:
    """Return the best MIME hint for *payload*.

    The declared content type wins unless it is missing or generic; image
    bytes are then sniffed with Pillow and the filename extension is the
    last resort.
    """

    declared = (payload.content_type or "").strip().lower()
    if declared and declared != FALLBACK_MIME:
        return declared
    sniffed = probe_image(payload.data)
    if sniffed:
        return sniffed
    guessed, _encoding = mimetypes.guess_type(payload.filename)
    return guessed or FALLBACK_MIME


def render_preview(
    data: bytes,
    *,
    size: tuple[int, int] = DEFAULT_PREVIEW_SIZE,
) -> PreviewResult | None:
    """Downscale image *data* into a PNG preview; ``None`` for non-images."""

    try:
        with Image.open(io.BytesIO(data)) as image:
            source_size = image.size
            preview = image.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError):
        return None

    preview.thumbnail(size, Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    preview.save(buffer, format="PNG")
    return PreviewResult(image_bytes=buffer.getvalue(), mime="image/png", source_size=source_size)


class PreviewRegistry:
    """Hand out and revoke process-local preview locators."""

    def __init__(self, *, size: tuple[int, int] = DEFAULT_PREVIEW_SIZE) -> None:
        self._size = size
        self._entries: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def acquire(self, payload: FilePayload) -> str:
        """Register *payload* and return the locator that resolves to it."""

        rendered = render_preview(payload.data, size=self._size)
        if rendered is not None:
            content, mime = rendered.image_bytes, rendered.mime
        else:
            content, mime = payload.data, detect_mime(payload)

        token = uuid.uuid4().hex
        locator = f"{PREVIEW_SCHEME}{token}/{safe_filename(payload.filename)}"
        with self._lock:
            self._entries[locator] = (content, mime)
        return locator

    def resolve(self, locator: str) -> tuple[bytes, str] | None:
        """Return ``(bytes, mime)`` for a live locator, else ``None``."""

        with self._lock:
            return self._entries.get(locator)

    def release(self, locator: str | None) -> bool:
        """Revoke *locator*; releasing an unknown locator is a no-op."""

        if not locator or not locator.startswith(PREVIEW_SCHEME):
            return False
        with self._lock:
            released = self._entries.pop(locator, None) is not None
        if released:
            logger.debug("Released preview %s", locator)
        return released

    def release_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, locator: object) -> bool:
        with self._lock:
            return locator in self._entries
