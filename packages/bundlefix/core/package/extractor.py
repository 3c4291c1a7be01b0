"""Package extractor.

Unpacks an ``.ipa`` (zip) or copies an ``.xcarchive`` directory into a
working directory and locates the single application root.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
import shutil
import zipfile
import zlib

from bundlefix.core.errors import ExtractionError
from bundlefix.core.package.models import ArchiveEntry, Package, PackageFormat

logger = logging.getLogger(__name__)

PACKAGE_DIRNAME = "package"

# Where each format keeps its application roots
APP_CONTAINERS: dict[PackageFormat, tuple[str, ...]] = {
    PackageFormat.IPA: ("Payload",),
    PackageFormat.XCARCHIVE: ("Products", "Applications"),
}


def detect_package_format(archive_path: Path) -> PackageFormat:
    """Infer the artifact format from what is on disk.

    Raises:
        ExtractionError: If the path is missing or an unsupported directory
    """
    if not archive_path.exists():
        raise ExtractionError("Archive not found", path=archive_path)
    if archive_path.is_dir():
        if archive_path.suffix.lower() != ".xcarchive":
            raise ExtractionError("Directory input must be an .xcarchive", path=archive_path)
        return PackageFormat.XCARCHIVE
    return PackageFormat.IPA


def _safe_entry_name(name: str, archive_path: Path) -> PurePosixPath:
    relative = PurePosixPath(name.rstrip("/"))
    if (
        not name
        or name.startswith(("/", "\\"))
        or "\\" in name
        or not relative.parts
        or ".." in relative.parts
        or (relative.parts and ":" in relative.parts[0])
    ):
        raise ExtractionError(f"Unsafe archive entry name: {name!r}", path=archive_path)
    return relative


def find_app_root(names: list[str], package_format: PackageFormat, source: Path) -> str:
    """Locate the single ``.app`` directly under the format's app container.

    Args:
        names: Package-relative entry names
        package_format: Artifact format
        source: Artifact path (for error messages)

    Returns:
        App root relative to the package root

    Raises:
        ExtractionError: If zero or several application roots are present
    """
    container = APP_CONTAINERS[package_format]
    depth = len(container)
    roots: set[str] = set()
    for name in names:
        parts = PurePosixPath(name.rstrip("/")).parts
        if len(parts) <= depth or parts[:depth] != container:
            continue
        if parts[depth].lower().endswith(".app"):
            roots.add(parts[depth])

    location = "/".join(container)
    if not roots:
        raise ExtractionError(f"No application root found under {location}/", path=source)
    if len(roots) > 1:
        found = ", ".join(sorted(roots))
        raise ExtractionError(
            f"Expected exactly one application root under {location}/, found: {found}",
            path=source,
        )
    return f"{location}/{roots.pop()}"


def _require_app_directory(root_dir: Path, app_path: str, archive_path: Path) -> None:
    if not root_dir.joinpath(*PurePosixPath(app_path).parts).is_dir():
        raise ExtractionError(f"Application root is not a directory: {app_path}", path=archive_path)


def _extract_zip(archive_path: Path, root_dir: Path) -> Package:
    try:
        zf = zipfile.ZipFile(archive_path)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ExtractionError(f"Not a valid zip archive: {e}", path=archive_path) from e
    except OSError as e:
        raise ExtractionError(f"Archive is unreadable: {e}", path=archive_path) from e

    with zf:
        infos = zf.infolist()
        entries: list[ArchiveEntry] = []
        seen: set[str] = set()
        for info in infos:
            _safe_entry_name(info.filename, archive_path)
            if info.filename in seen:
                raise ExtractionError(
                    f"Duplicate archive entry: {info.filename}", path=archive_path
                )
            seen.add(info.filename)
            entries.append(
                ArchiveEntry(
                    name=info.filename,
                    is_dir=info.is_dir(),
                    compress_type=info.compress_type,
                    date_time=info.date_time,
                    external_attr=info.external_attr,
                    create_system=info.create_system,
                )
            )

        app_path = find_app_root([e.name for e in entries], PackageFormat.IPA, archive_path)

        # Symlink entries are written out as plain files holding the link
        # target; the repackager restores them from the entry attributes.
        try:
            for info in infos:
                target = root_dir.joinpath(*PurePosixPath(info.filename.rstrip("/")).parts)
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, target.open("wb") as dst:
                    shutil.copyfileobj(src, dst)
        except (zipfile.BadZipFile, NotImplementedError, RuntimeError, zlib.error, EOFError) as e:
            raise ExtractionError(f"Archive is corrupted: {e}", path=archive_path) from e
        except OSError as e:
            raise ExtractionError(f"Could not extract archive: {e}", path=archive_path) from e

    _require_app_directory(root_dir, app_path, archive_path)

    logger.info(f"Extracted {len(entries)} entries from {archive_path.name} ({app_path})")
    return Package(
        root_dir=root_dir,
        source=archive_path,
        format=PackageFormat.IPA,
        app_path=app_path,
        entries=entries,
    )


def _copy_xcarchive(archive_path: Path, root_dir: Path) -> Package:
    entries: list[ArchiveEntry] = []
    for current, dirs, files in os.walk(archive_path):
        dirs.sort()
        base = Path(current)
        for name in dirs:
            relative = (base / name).relative_to(archive_path).as_posix()
            entries.append(ArchiveEntry(name=f"{relative}/", is_dir=True))
        for name in sorted(files):
            relative = (base / name).relative_to(archive_path).as_posix()
            entries.append(ArchiveEntry(name=relative))

    app_path = find_app_root([e.name for e in entries], PackageFormat.XCARCHIVE, archive_path)

    try:
        shutil.copytree(archive_path, root_dir, symlinks=True, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        raise ExtractionError(f"Could not copy archive: {e}", path=archive_path) from e

    _require_app_directory(root_dir, app_path, archive_path)

    logger.info(f"Copied {len(entries)} entries from {archive_path.name} ({app_path})")
    return Package(
        root_dir=root_dir,
        source=archive_path,
        format=PackageFormat.XCARCHIVE,
        app_path=app_path,
        entries=entries,
    )


def extract_package(archive_path: Path | str, work_dir: Path | str) -> Package:
    """Unpack an artifact into ``<work_dir>/package``.

    Args:
        archive_path: ``.ipa`` file or ``.xcarchive`` directory
        work_dir: Working directory owned by the caller (caller removes it)

    Returns:
        Package describing the extracted tree

    Raises:
        ExtractionError: If the artifact is missing, unreadable, not a valid
            container, has unsafe entry names, or does not hold exactly one
            application root
    """
    archive_path = Path(archive_path)
    package_format = detect_package_format(archive_path)
    root_dir = Path(work_dir) / PACKAGE_DIRNAME
    root_dir.mkdir(parents=True, exist_ok=True)

    if package_format is PackageFormat.XCARCHIVE:
        return _copy_xcarchive(archive_path, root_dir)
    return _extract_zip(archive_path, root_dir)
