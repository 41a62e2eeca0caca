"""Utility helpers for plagannotate."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from .errors import UnsafePathError


def ensure_dir(path: os.PathLike[str] | str) -> Path:
    """Ensure directory exists and return its :class:`Path`."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def safe_relative_path(path: str) -> PurePosixPath:
    """Return ``path`` as a relative POSIX path or raise :class:`UnsafePathError`.

    Backslashes are treated as separators so Windows style report paths are
    checked the same way.  Absolute paths and any ``..`` segment are rejected.
    """
    text = str(path).replace("\\", "/").strip()
    if not text:
        raise UnsafePathError(path)
    candidate = PurePosixPath(text)
    if candidate.is_absolute() or text.startswith("/"):
        raise UnsafePathError(path)
    if any(part == ".." for part in candidate.parts):
        raise UnsafePathError(path)
    return candidate


def ensure_case_filename(filename: str) -> str:
    """Case filenames are single path components."""
    text = str(filename)
    if not text or ".." in text or "/" in text or "\\" in text:
        raise UnsafePathError(filename)
    return text
