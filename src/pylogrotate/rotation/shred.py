"""Secure deletion of rotated files."""
from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def shred_file(path: Path, cycles: int = 3) -> None:
    """Overwrite *path* with random bytes *cycles* times, then delete it.

    Each pass is flushed and fsynced before the next one starts.  After
    the last pass the file is truncated to zero length and unlinked.
    """
    size = path.stat().st_size
    with path.open("r+b") as fh:
        for cycle in range(cycles):
            fh.seek(0)
            remaining = size
            while remaining > 0:
                chunk = min(remaining, _CHUNK_SIZE)
                fh.write(os.urandom(chunk))
                remaining -= chunk
            fh.flush()
            os.fsync(fh.fileno())
            logger.debug("Shred pass %d/%d on %s", cycle + 1, cycles, path)
        fh.truncate(0)
    path.unlink()
    logger.info("Shredded %s (%d passes)", path, cycles)
