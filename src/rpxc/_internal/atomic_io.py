"""Atomic file writes.

A reader of the destination sees either the old content or the new content,
never a partial write: bytes go to a sibling temp file that is flushed,
fsynced and then renamed over the destination.
"""

import os
from pathlib import Path
from typing import Optional


def atomic_write_bytes(path: Path, blob: bytes, mode: Optional[int] = None) -> None:
    """Write blob to path atomically.

    Args:
        path: Destination file
        blob: Bytes to write
        mode: Optional permission bits applied before the rename

    Raises:
        OSError: If any step fails. The temp file is removed first.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        with tmp.open("wb") as f:
            f.write(blob)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(str(tmp), str(path))
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def atomic_write_text(path: Path, text: str, mode: Optional[int] = None) -> None:
    """Write UTF-8 text to path atomically (LF line endings kept as given)."""
    atomic_write_bytes(path, text.encode("utf-8"), mode=mode)
