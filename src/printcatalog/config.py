"""Configuration helpers for the printcatalog application."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .utils.paths import coerce_required_path

__all__ = [
    "AppConfig",
    "API_URL_ENV_VAR",
    "DATABASE_URL_ENV_VAR",
    "DATA_ROOT_ENV_VAR",
    "DEFAULT_BUNDLE_BUCKET",
    "DEFAULT_DATA_ROOT",
    "DEFAULT_DESIGN_BUCKET",
    "DEFAULT_MAX_FILE_BYTES",
    "MAX_FILE_MB_ENV_VAR",
    "PUBLIC_URL_ENV_VAR",
    "configure",
    "get_config",
]

DATA_ROOT_ENV_VAR: Final[str] = "PRINTCATALOG_DATA_PATH"
"""Environment variable that overrides the default data directory."""

DATABASE_URL_ENV_VAR: Final[str] = "PRINTCATALOG_DATABASE_URL"
"""Environment variable holding a SQLAlchemy database URL."""

PUBLIC_URL_ENV_VAR: Final[str] = "PRINTCATALOG_PUBLIC_URL"
"""Environment variable holding the base URL used to build public object URLs."""

API_URL_ENV_VAR: Final[str] = "PRINTCATALOG_API_URL"
"""Environment variable holding the base URL the dashboard client talks to."""

MAX_FILE_MB_ENV_VAR: Final[str] = "PRINTCATALOG_MAX_FILE_MB"
"""Environment variable limiting the size of downloadable file uploads."""

DEFAULT_DATA_ROOT: Final[Path] = Path.home() / ".printcatalog"
"""Default directory holding the SQLite database and the object buckets."""

DEFAULT_DESIGN_BUCKET: Final[str] = "print-designs"
DEFAULT_BUNDLE_BUCKET: Final[str] = "bundles"

DEFAULT_PUBLIC_URL: Final[str] = "http://localhost:8000"
DEFAULT_MAX_FILE_BYTES: Final[int] = 100 * 1024 * 1024
DEFAULT_REQUEST_TIMEOUT: Final[float] = 30.0


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Runtime configuration for the printcatalog application."""

    data_root: Path
    database_url: str | None = None
    public_base_url: str = DEFAULT_PUBLIC_URL
    api_base_url: str | None = None
    design_bucket: str = DEFAULT_DESIGN_BUCKET
    bundle_bucket: str = DEFAULT_BUNDLE_BUCKET
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    hydrate_workers: int = 4

    def __post_init__(self) -> None:
        normalized = coerce_required_path(self.data_root)
        object.__setattr__(self, "data_root", normalized)
        object.__setattr__(self, "public_base_url", self.public_base_url.rstrip("/"))
        if self.max_file_bytes <= 0:
            raise ValueError("max_file_bytes must be positive")

    @property
    def storage_root(self) -> Path:
        """Directory under which every bucket keeps its objects."""

        return self.data_root / "storage"

    @property
    def resolved_database_url(self) -> str:
        """Return the configured database URL or the default SQLite file."""

        if self.database_url:
            return self.database_url
        return f"sqlite+pysqlite:///{self.data_root / 'catalog.sqlite3'}"

    @property
    def resolved_api_base_url(self) -> str:
        """Return the API base URL with a trailing slash for ``urljoin``."""

        base = self.api_base_url or self.public_base_url
        return base if base.endswith("/") else f"{base}/"

    def bucket_for(self, kind: str) -> str:
        """Return the bucket holding blobs for catalog entries of *kind*."""

        if kind == "designs":
            return self.design_bucket
        if kind == "bundles":
            return self.bundle_bucket
        raise ValueError(f"Unknown catalog kind: {kind!r}")


_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    """Return the cached :class:`AppConfig` instance."""

    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _build_config()
    return _CONFIG


def configure(
    *,
    data_root: str | Path | None = None,
    database_url: str | None = None,
    public_base_url: str | None = None,
    api_base_url: str | None = None,
) -> AppConfig:
    """Rebuild the global configuration with optional overrides."""

    global _CONFIG
    _CONFIG = _build_config(
        data_root=data_root,
        database_url=database_url,
        public_base_url=public_base_url,
        api_base_url=api_base_url,
    )
    return _CONFIG


def _build_config(
    *,
    data_root: str | Path | None = None,
    database_url: str | None = None,
    public_base_url: str | None = None,
    api_base_url: str | None = None,
) -> AppConfig:
    if data_root is not None:
        root = coerce_required_path(
            data_root,
            empty_error="Data path overrides cannot be empty",
        )
    else:
        env_value = os.environ.get(DATA_ROOT_ENV_VAR)
        if env_value:
            root = coerce_required_path(
                env_value,
                empty_error="Data path overrides cannot be empty",
            )
        else:
            root = DEFAULT_DATA_ROOT

    return AppConfig(
        data_root=root,
        database_url=database_url or os.environ.get(DATABASE_URL_ENV_VAR) or None,
        public_base_url=public_base_url
        or os.environ.get(PUBLIC_URL_ENV_VAR)
        or DEFAULT_PUBLIC_URL,
        api_base_url=api_base_url or os.environ.get(API_URL_ENV_VAR) or None,
        max_file_bytes=_max_file_bytes_from_env(),
    )


def _max_file_bytes_from_env() -> int:
    raw = os.environ.get(MAX_FILE_MB_ENV_VAR, "").strip()
    if not raw:
        return DEFAULT_MAX_FILE_BYTES
    try:
        megabytes = int(raw)
    except ValueError as exc:
        raise ValueError(f"{MAX_FILE_MB_ENV_VAR} must be an integer, got {raw!r}") from exc
    return max(1, megabytes) * 1024 * 1024
