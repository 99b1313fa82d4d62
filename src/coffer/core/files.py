"""Temporary files and atomic replacement.

A destination is never written in place: output goes to a hidden file in
the same directory which is then moved over the destination with
:func:`os.replace`. On POSIX the temporary file is created ``0600`` and
without following symlinks.
"""

from __future__ import annotations

import logging
import os
import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

_MAX_ATTEMPTS = 128


def _open_exclusive(path: Path, mode: int = 0o600) -> int:
    flags = os.O_RDWR | os.O_CREAT | os.O_EXCL
    if os.name == "posix":
        flags |= getattr(os, "O_NOFOLLOW", 0)
    return os.open(str(path), flags, mode)


def create_temp_beside(path: Path, suffix: str = ".tmp", mode: str = "wb") -> tuple[Path, BinaryIO]:
    """Create a uniquely named hidden file next to *path*, open for writing."""
    parent = path.parent
    for _ in range(_MAX_ATTEMPTS):
        tmp_path = parent / f".{path.name}{suffix}.{secrets.token_hex(8)}"
        try:
            fd = _open_exclusive(tmp_path)
        except FileExistsError:
            continue
        try:
            return tmp_path, os.fdopen(fd, mode, closefd=True)
        except BaseException:
            os.close(fd)
            unlink_quietly(tmp_path)
            raise
    raise FileExistsError(f"Could not create a unique temporary file in {parent}")


def fsync_dir(dir_path: Path) -> None:
    """Flush a directory entry on POSIX; a no-op elsewhere."""
    if os.name != "posix":
        return
    try:
        fd = os.open(str(dir_path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug("fsync of directory %s not supported", dir_path)
    finally:
        os.close(fd)


def unlink_quietly(path: Path) -> None:
    """Remove *path* if it exists; used on cleanup paths only."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Could not remove temporary file %s", path, exc_info=True)


@contextmanager
def atomic_write(path: Path, suffix: str = ".tmp") -> Iterator[BinaryIO]:
    """Write to a temporary file and move it over *path* on success.

    Any exception (including ``KeyboardInterrupt``) inside the block deletes
    the temporary file and leaves *path* untouched.

    Example:
        with atomic_write(Path("secret.txt")) as out:
            out.write(data)
    """
    path = Path(path)
    tmp_path, handle = create_temp_beside(path, suffix)
    try:
        with handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        unlink_quietly(tmp_path)
        raise
    fsync_dir(path.parent)


@contextmanager
def scratch_beside(path: Path, suffix: str = ".tmp") -> Iterator[BinaryIO]:
    """Read/write scratch file next to *path*, removed when the block exits."""
    tmp_path, handle = create_temp_beside(Path(path), suffix, mode="w+b")
    try:
        with handle:
            yield handle
    finally:
        unlink_quietly(tmp_path)
