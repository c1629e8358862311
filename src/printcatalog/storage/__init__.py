"""Object storage buckets holding thumbnails, gallery images and files."""

from .object_store import (
    PUBLIC_OBJECT_MARKER,
    ObjectStore,
    StorageLocator,
    build_object_path,
    parse_public_url,
)

__all__ = [
    "ObjectStore",
    "PUBLIC_OBJECT_MARKER",
    "StorageLocator",
    "build_object_path",
    "parse_public_url",
]
