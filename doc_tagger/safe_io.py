"""Atomic file writing for the thumbnail cache.

Writes to a temporary file in the same directory, then atomically renames,
so a concurrent reader never sees a half-written image.
"""

import os
import tempfile
from pathlib import Path

from .errors import StateError


def atomic_write_bytes(path: Path | str, data: bytes) -> None:
    """Write bytes to a file atomically.

    If the write fails for any reason, the original file is unchanged.

    Args:
        path: Target file path.
        data: Content to write.

    Raises:
        StateError: If the write fails (wraps underlying OSError).
    """
    target = Path(path)
    tmp_path = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target)
    except OSError as exc:
        # Clean up temp file on failure
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise StateError(f"Failed to write {target}: {exc}") from exc
