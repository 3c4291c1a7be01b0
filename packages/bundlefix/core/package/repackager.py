"""Repackager: rebuilds an artifact from a (possibly rewritten) working tree."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
import zipfile

from bundlefix.core.errors import RepackageError
from bundlefix.core.package.models import ArchiveEntry, Package, PackageFormat

logger = logging.getLogger(__name__)


def _zip_info(entry: ArchiveEntry) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(entry.name, date_time=entry.date_time)
    info.compress_type = entry.compress_type
    info.external_attr = entry.external_attr
    info.create_system = entry.create_system
    return info


def _unlisted_files(package: Package) -> list[str]:
    """Working-tree files the source manifest does not list, in sorted order."""
    listed = {entry.relative_path for entry in package.entries if not entry.is_dir}
    extra: list[str] = []
    for current, dirs, files in os.walk(package.root_dir):
        dirs.sort()
        for name in sorted(files):
            relative = package.relative(Path(current) / name)
            if relative not in listed:
                extra.append(relative)
    return extra


def _write_zip(package: Package, destination: Path) -> int:
    written = 0
    with zipfile.ZipFile(destination, "w", allowZip64=True) as zf:
        for entry in package.entries:
            info = _zip_info(entry)
            if entry.is_dir:
                zf.writestr(info, b"")
                written += 1
                continue
            source = package.resolve(entry.relative_path)
            if not source.is_file():
                raise RepackageError(
                    "File listed in the source archive is missing from the working tree",
                    path=entry.name,
                )
            info.file_size = source.stat().st_size
            with source.open("rb") as src, zf.open(
                info, "w", force_zip64=info.file_size >= zipfile.ZIP64_LIMIT
            ) as dst:
                shutil.copyfileobj(src, dst)
            written += 1

        for relative in _unlisted_files(package):
            logger.warning(f"Adding file not present in the source archive: {relative}")
            zf.write(package.resolve(relative), relative, compress_type=zipfile.ZIP_DEFLATED)
            written += 1
    return written


def _reopen_zip(destination: Path) -> None:
    try:
        with zipfile.ZipFile(destination) as zf:
            bad = zf.testzip()
    except (zipfile.BadZipFile, OSError) as e:
        raise RepackageError(f"Repackaged archive cannot be reopened: {e}", path=destination) from e
    if bad is not None:
        raise RepackageError(f"Repackaged archive has a corrupt entry: {bad}", path=destination)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def repackage(package: Package, destination: Path | str) -> Path:
    """Write the package's working tree to ``destination``.

    ``.ipa`` packages are rewritten entry by entry in the source order, with
    each entry's name, compression, timestamp and attributes carried over.
    Files the source did not list are appended rather than dropped.
    ``.xcarchive`` packages are copied as a directory tree.

    Args:
        package: Extracted package
        destination: Output path (replaced if present)

    Returns:
        The destination path

    Raises:
        RepackageError: If the destination cannot be written, a listed file is
            missing, or the result cannot be reopened
    """
    destination = Path(destination)
    if destination.resolve() == package.source.resolve():
        raise RepackageError("Refusing to overwrite the input artifact", path=destination)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        _remove(destination)
        if package.format is PackageFormat.XCARCHIVE:
            shutil.copytree(package.root_dir, destination, symlinks=True)
            count = len(package.entries)
        else:
            count = _write_zip(package, destination)
    except RepackageError:
        raise
    except (OSError, shutil.Error, zipfile.LargeZipFile) as e:
        raise RepackageError(f"Could not write output: {e}", path=destination) from e

    if package.format is PackageFormat.XCARCHIVE:
        if not (destination / package.app_path).is_dir():
            raise RepackageError("Copied archive is missing its app root", path=destination)
    else:
        _reopen_zip(destination)

    logger.info(f"Repackaged {count} entries into {destination}")
    return destination


def publish_artifact(staged: Path, destination: Path) -> Path:
    """Move a verified artifact to its final location, replacing what is there.

    Raises:
        RepackageError: If the artifact cannot be moved
    """
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        _remove(destination)
        shutil.move(str(staged), str(destination))
    except (OSError, shutil.Error) as e:
        raise RepackageError(f"Could not publish output: {e}", path=destination) from e
    logger.info(f"Published {destination}")
    return destination
