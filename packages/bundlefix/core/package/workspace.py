"""Transient working directories."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging
import os
from pathlib import Path
import shutil
import tempfile
import time

logger = logging.getLogger(__name__)


@contextmanager
def working_directory(root: Path | str | None = None, prefix: str = "bundlefix") -> Iterator[Path]:
    """Create a uniquely named working directory and always remove it.

    The name carries a timestamp and the process id, and ``mkdtemp`` adds a
    random part, so concurrent runs never share a directory.

    Args:
        root: Parent directory (default: system temp dir)
        prefix: Directory name prefix

    Yields:
        Path to the working directory

    Example:
        >>> with working_directory() as work_dir:
        ...     package = extract_package(archive, work_dir)
    """
    if root is not None:
        Path(root).mkdir(parents=True, exist_ok=True)
    stamp = time.strftime("%Y%m%d%H%M%S")
    path = Path(tempfile.mkdtemp(prefix=f"{prefix}_{stamp}_{os.getpid()}_", dir=root))
    logger.debug(f"Created working directory {path}")
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
            logger.debug(f"Removed working directory {path}")
        except OSError as e:
            logger.warning(f"Could not remove working directory {path}: {e}")
