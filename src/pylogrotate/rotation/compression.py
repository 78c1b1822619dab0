"""Compression of rotated files.

The built-in compressor writes a gzip stream with :mod:`gzip`.  When a
policy names ``compresscmd``, that program is run instead with the source
file on stdin and its stdout redirected to the target file, e.g.
``compresscmd /usr/bin/bzip2`` plus ``compressoptions -9``.
"""
from __future__ import annotations

import gzip
import logging
import shlex
import shutil
import subprocess
from pathlib import Path

from pylogrotate.errors import CompressionError
from pylogrotate.policies.policy import PolicyRecord

logger = logging.getLogger(__name__)

GZIP_MAGIC: bytes = b"\x1f\x8b"


def is_gzip_file(path: Path) -> bool:
    """Return ``True`` when *path* starts with the gzip magic number."""
    try:
        with path.open("rb") as fh:
            return fh.read(2) == GZIP_MAGIC
    except OSError:
        return False


def compress_file(source: Path, target: Path, policy: PolicyRecord) -> Path:
    """Compress *source* into *target* and delete *source*.

    Parameters
    ----------
    source:
        Uncompressed rotated file.
    target:
        Destination path, normally ``source`` plus the compression suffix.
    policy:
        Supplies ``compresscmd`` and ``compressoptions``.

    Returns
    -------
    Path
        *target*.

    Raises
    ------
    CompressionError
        If the external compressor exits non-zero.  *source* is left in
        place and the partial *target* is removed.
    """
    if policy.compresscmd:
        _run_external(source, target, policy)
    else:
        with source.open("rb") as src, gzip.open(target, "wb") as dst:
            shutil.copyfileobj(src, dst)
    source.unlink()
    logger.info("Compressed %s -> %s", source, target)
    return target


def _run_external(source: Path, target: Path, policy: PolicyRecord) -> None:
    command = [*shlex.split(policy.compresscmd or ""), *policy.compressoptions]
    logger.debug("Running compressor: %s", " ".join(command))
    with source.open("rb") as src, target.open("wb") as dst:
        completed = subprocess.run(
            command, stdin=src, stdout=dst, stderr=subprocess.PIPE, check=False
        )
    if completed.returncode != 0:
        target.unlink(missing_ok=True)
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        raise CompressionError(
            f"compressor {command[0]!r} exited with {completed.returncode}: {stderr}"
        )
