"""Utilities for coercing user-provided values into :class:`~pathlib.Path` objects."""

from __future__ import annotations

from os import PathLike
from pathlib import Path

__all__ = ["coerce_required_path", "safe_filename"]


def _normalize_path(path: Path) -> Path:
    return path.expanduser().resolve()


def coerce_required_path(
    value: str | Path | PathLike[str],
    *,
    empty_error: str | None = None,
) -> Path:
    """Return *value* coerced into an absolute :class:`~pathlib.Path`.

    Parameters
    ----------
    value:
        Path-like object that must resolve to a non-empty filesystem location.
    empty_error:
        Optional custom error message raised when *value* cannot be coerced
        because it resolves to an empty string.
    """

    if isinstance(value, Path):
        candidate = value
    else:
        text = str(value).strip()
        if not text:
            msg = empty_error or "Path value cannot be empty."
            raise ValueError(msg)
        candidate = Path(text)

    return _normalize_path(candidate)


def safe_filename(name: str | None, *, fallback: str = "upload.bin") -> str:
    """Return the final component of *name* stripped of separators and spaces."""

    text = (name or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    text = "-".join(text.split())
    if not text or text in {".", ".."}:
        return fallback
    return text
