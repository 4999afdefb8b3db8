"""Local snapshot persistence with atomic replace."""

import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path

from snapshot_relay.core.errors import PersistError

__all__ = ["save_snapshot"]

logger = logging.getLogger(__name__)

FILE_MODE = 0o644


def _write_atomic(payload: bytes, path: Path) -> Path:
    """Write payload to a sibling temp file, fsync it, then rename over path.

    Readers see either the previous file or the complete new one. Concurrent
    writers each rename their own temp file, so the last rename wins.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, FILE_MODE)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise
    return path


async def save_snapshot(payload: bytes, file_path: str) -> Path:
    """Create or replace ``file_path`` with ``payload``.

    File I/O runs in a worker thread so the event loop keeps ticking.

    Args:
        payload: Snapshot bytes.
        file_path: Destination file.

    Returns:
        Path of the written file.

    Raises:
        PersistError: On any filesystem failure (permission, disk full,
            missing directory, invalid path).
    """
    path = Path(file_path)
    try:
        written = await asyncio.to_thread(_write_atomic, payload, path)
    except (OSError, ValueError) as e:
        raise PersistError(file_path, f"{type(e).__name__}: {e}") from e

    logger.debug(f"Wrote {len(payload)} bytes to {written}")
    return written
