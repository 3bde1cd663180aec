"""
temp_dirs.py — Temporary Storage Allocation
=============================================
Hands out uniquely named temporary directories and files for node
storage and TLS material. Everything allocated here is removed when
the interpreter exits.
"""

import atexit
import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import List

from embedded_node.config import settings

logger = logging.getLogger(__name__)

_allocated: List[Path] = []
_lock = threading.Lock()


def _register(path: Path) -> Path:
    with _lock:
        _allocated.append(path)
    return path


def new_temp_dir() -> Path:
    """
    Create a fresh, uniquely named temporary directory.

    Returns:
        Absolute path of the new directory.

    Raises:
        OSError: If the directory cannot be created.
    """
    path = Path(
        tempfile.mkdtemp(prefix=settings.TEMP_DIR_PREFIX, dir=settings.TEMP_DIR_ROOT)
    ).resolve()
    logger.info("Allocated temp directory %s", path)
    return _register(path)


def new_temp_file(suffix: str = "") -> Path:
    """
    Create an empty, uniquely named temporary file.

    Args:
        suffix: Filename suffix (e.g. ".pem").

    Returns:
        Absolute path of the new file.
    """
    fd, name = tempfile.mkstemp(
        prefix=settings.TEMP_DIR_PREFIX, suffix=suffix, dir=settings.TEMP_DIR_ROOT
    )
    os.close(fd)
    path = Path(name).resolve()
    logger.debug("Allocated temp file %s", path)
    return _register(path)


def cleanup() -> None:
    """Remove every path allocated so far."""
    with _lock:
        paths = list(_allocated)
        _allocated.clear()

    for path in paths:
        if path.is_dir():
            shutil.rmtree(path, ignore_errors=True)
        elif path.exists():
            path.unlink()
    if paths:
        logger.debug("Removed %d temp paths", len(paths))


atexit.register(cleanup)
