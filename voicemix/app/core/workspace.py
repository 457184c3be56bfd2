from __future__ import annotations

import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from uuid import uuid4

logger = logging.getLogger(__name__)


def staging_dir() -> Path:
    return Path(tempfile.gettempdir())


def staged_output_path(tmp_dir: Path | None = None, suffix: str = ".mp3") -> Path:
    root = Path(tmp_dir) if tmp_dir is not None else staging_dir()
    return root / f"mix-{uuid4()}{suffix}"


def remove_staged(path: Path) -> None:
    """Delete a staged file; failures are logged and swallowed."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to remove staged file %s: %s", path, exc)


@contextmanager
def staged_output(tmp_dir: Path | None = None, suffix: str = ".mp3") -> Iterator[Path]:
    """Yield a fresh private output path and remove it on every exit path."""
    path = staged_output_path(tmp_dir, suffix)
    try:
        yield path
    finally:
        remove_staged(path)
