"""File path helpers: stored-upload resolution and output naming."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
import re

from .types import ExportFormat

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def resolve_local_path(stored: str | None, uploads_dir: Path) -> Path | None:
    """Resolve a stored file reference to an existing file.

    Legacy rows may hold absolute paths from an older storage location. An
    absolute path is used when it still exists; otherwise the file name is
    looked up in the canonical uploads directory.

    Args:
        stored: The reference saved by the persistence layer
        uploads_dir: Canonical upload storage directory

    Returns:
        Existing file path, or None if nothing matches
    """
    if not stored:
        return None
    candidate = Path(stored)
    if candidate.is_absolute() and candidate.is_file():
        return candidate
    fallback = uploads_dir / candidate.name
    if fallback.is_file():
        return fallback
    return None


def sanitize_project_name(name: str | None) -> str:
    cleaned = _INVALID_FILENAME_CHARS.sub("", (name or "").strip())
    cleaned = re.sub(r"\s+", "_", cleaned)[:100]
    return cleaned or "Untitled"


def build_output_path(
    exports_dir: Path, project_name: str | None, fmt: str, now: datetime | None = None
) -> Path:
    """Build `{sanitized_name}-{epoch_ms}.{ext}` inside exports_dir."""
    moment = now or datetime.now()
    stamp = int(moment.timestamp() * 1000)
    base = f"{sanitize_project_name(project_name)}-{stamp}"
    return exports_dir / f"{base}.{ExportFormat.extension(fmt)}"
