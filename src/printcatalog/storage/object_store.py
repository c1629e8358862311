"""Filesystem-backed object buckets with public URL helpers."""

from __future__ import annotations

import logging
import mimetypes
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

from ..errors import StorageError
from ..utils.paths import safe_filename

__all__ = [
    "ObjectStore",
    "PUBLIC_OBJECT_MARKER",
    "StorageLocator",
    "build_object_path",
    "parse_public_url",
]

logger = logging.getLogger(__name__)

PUBLIC_OBJECT_MARKER = "/object/public/"
"""Path segment separating the URL prefix from ``<bucket>/<path>``."""

_PUBLIC_PREFIX = "/storage/v1/object/public"


@dataclass(frozen=True, slots=True)
class StorageLocator:
    """Address of a single stored object."""

    bucket: str
    path: str


def parse_public_url(url: str | None) -> StorageLocator | None:
    """Recover ``(bucket, path)`` from a public object URL.

    Returns ``None`` when *url* is empty or does not contain the public
    object marker.
    """

    if not url:
        return None
    try:
        parsed = urlparse(str(url))
    except ValueError:
        return None
    pathname = parsed.path
    index = pathname.find(PUBLIC_OBJECT_MARKER)
    if index == -1:
        return None
    rest = pathname[index + len(PUBLIC_OBJECT_MARKER) :]
    bucket, sep, path = rest.partition("/")
    if not sep or not bucket or not path:
        return None
    return StorageLocator(bucket=unquote(bucket), path=unquote(path))


def build_object_path(owner_id: str, filename: str | None, *, now: datetime | None = None) -> str:
    """Return a fresh ``{owner}/{timestamp}-{filename}`` object path."""

    moment = now or datetime.now(UTC)
    stamp = int(moment.timestamp() * 1000)
    token = uuid.uuid4().hex[:6]
    return f"{owner_id}/{stamp}-{token}-{safe_filename(filename)}"


class ObjectStore:
    """Store blobs below ``root/<bucket>/<path>`` and expose public URLs."""

    def __init__(self, root: str | Path, *, public_base_url: str) -> None:
        self._root = Path(root).expanduser()
        self._public_base_url = public_base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        upsert: bool = False,
    ) -> StorageLocator:
        """Write *data* to ``bucket/path``; existing objects need *upsert*."""

        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {bucket}/{path}: {exc}") from exc
        logger.debug("Stored %d bytes at %s/%s", len(data), bucket, path)
        return StorageLocator(bucket=bucket, path=path)

    def remove(self, bucket: str, paths: Iterable[str]) -> list[str]:
        """Delete objects in *bucket*; missing objects are silently skipped.

        Returns the paths that were actually removed.
        """

        removed: list[str] = []
        for path in paths:
            target = self._resolve(bucket, path)
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageError(f"Failed to remove {bucket}/{path}: {exc}") from exc
            removed.append(path)
            self._prune_empty_parents(bucket, target.parent)
        return removed

    def read(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Object not found: {bucket}/{path}") from exc

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    def list_objects(self, bucket: str) -> list[str]:
        """Return every object path stored in *bucket*, sorted."""

        bucket_root = self._bucket_root(bucket)
        if not bucket_root.is_dir():
            return []
        return sorted(
            item.relative_to(bucket_root).as_posix() for item in bucket_root.rglob("*") if item.is_file()
        )

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._public_base_url}{_PUBLIC_PREFIX}/{bucket}/{path}"

    @staticmethod
    def guess_content_type(path: str) -> str:
        guessed, _encoding = mimetypes.guess_type(path)
        return guessed or "application/octet-stream"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _bucket_root(self, bucket: str) -> Path:
        if not bucket or "/" in bucket or "\\" in bucket or bucket in {".", ".."}:
            raise StorageError(f"Invalid bucket name: {bucket!r}")
        return self._root / bucket

    def _resolve(self, bucket: str, path: str) -> Path:
        relative = PurePosixPath(str(path).lstrip("/"))
        if not relative.parts or any(part in {"", ".", ".."} for part in relative.parts):
            raise StorageError(f"Invalid object path: {path!r}")
        return self._bucket_root(bucket).joinpath(*relative.parts)

    def _prune_empty_parents(self, bucket: str, directory: Path) -> None:
        bucket_root = self._bucket_root(bucket)
        current = directory
        while current != bucket_root and bucket_root in current.parents:
            try:
                current.rmdir()
            except OSError:
                return
            current = current.parent
