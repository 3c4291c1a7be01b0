"""Tests for package extraction."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import zipfile

import pytest

from bundlefix.core.errors import ExtractionError
from bundlefix.core.package.extractor import extract_package, find_app_root
from bundlefix.core.package.models import PackageFormat

MAIN_ID = "com.example.app"


def test_extract_ipa(make_ipa: Callable[..., Path], work_dir: Path) -> None:
    archive = make_ipa({"": MAIN_ID, "Frameworks/A.framework": MAIN_ID})

    package = extract_package(archive, work_dir)

    assert package.format is PackageFormat.IPA
    assert package.app_path == "Payload/App.app"
    assert package.app_name == "App.app"
    assert package.source == archive
    assert (package.app_root / "Frameworks" / "A.framework" / "Info.plist").is_file()
    with zipfile.ZipFile(archive) as zf:
        assert [e.name for e in package.entries] == zf.namelist()


def test_manifest_keeps_entry_attributes(make_ipa: Callable[..., Path], work_dir: Path) -> None:
    archive = make_ipa({"": MAIN_ID})

    package = extract_package(archive, work_dir)

    entries = {e.name: e for e in package.entries}
    assets = entries["Payload/App.app/Assets.car"]
    assert assets.compress_type == zipfile.ZIP_STORED
    assert assets.date_time == (2024, 5, 1, 12, 0, 0)
    assert entries["Payload/App.app/Info.plist"].compress_type == zipfile.ZIP_DEFLATED
    assert entries["Payload/"].is_dir


def test_extract_xcarchive(make_xcarchive: Callable[..., Path], work_dir: Path) -> None:
    archive = make_xcarchive({"": MAIN_ID, "PlugIns/Share.appex": MAIN_ID})

    package = extract_package(archive, work_dir)

    assert package.format is PackageFormat.XCARCHIVE
    assert package.app_path == "Products/Applications/App.app"
    assert "Products/Applications/App.app/PlugIns/Share.appex/Info.plist" in package.entry_names()
    assert (package.app_root / "PlugIns" / "Share.appex" / "Info.plist").is_file()


def test_no_application_root(work_dir: Path, tmp_path: Path) -> None:
    archive = tmp_path / "Empty.ipa"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("Payload/", b"")
        zf.writestr("Payload/readme.txt", b"nothing here")

    with pytest.raises(ExtractionError, match="No application root") as exc_info:
        extract_package(archive, work_dir)
    assert exc_info.value.path == archive


def test_several_application_roots(make_ipa: Callable[..., Path], work_dir: Path) -> None:
    archive = make_ipa(
        {"": MAIN_ID},
        extra_files={"Payload/Other.app/Info.plist": b""},
    )
    with pytest.raises(ExtractionError, match="exactly one application root"):
        extract_package(archive, work_dir)


def test_application_root_must_be_a_directory(tmp_path: Path, work_dir: Path) -> None:
    archive = tmp_path / "Flat.ipa"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("Payload/", b"")
        zf.writestr("Payload/App.app", b"not a directory")

    with pytest.raises(ExtractionError, match="not a directory") as exc_info:
        extract_package(archive, work_dir)
    assert exc_info.value.path == archive


def test_xcarchive_application_root_must_be_a_directory(tmp_path: Path, work_dir: Path) -> None:
    archive = tmp_path / "App.xcarchive"
    applications = archive / "Products" / "Applications"
    applications.mkdir(parents=True)
    (applications / "App.app").write_bytes(b"not a directory")

    with pytest.raises(ExtractionError, match="not a directory"):
        extract_package(archive, work_dir)


def test_missing_archive(tmp_path: Path, work_dir: Path) -> None:
    with pytest.raises(ExtractionError, match="not found"):
        extract_package(tmp_path / "missing.ipa", work_dir)


def test_not_a_zip(tmp_path: Path, work_dir: Path) -> None:
    archive = tmp_path / "App.ipa"
    archive.write_bytes(b"this is not a zip file")
    with pytest.raises(ExtractionError, match="Not a valid zip"):
        extract_package(archive, work_dir)


def test_plain_directory_is_rejected(tmp_path: Path, work_dir: Path) -> None:
    folder = tmp_path / "Payload"
    folder.mkdir()
    with pytest.raises(ExtractionError, match="xcarchive"):
        extract_package(folder, work_dir)


@pytest.mark.parametrize(
    "name",
    ["../evil.txt", "/etc/passwd", "Payload/App.app/../../evil", "C:/evil.txt", "a\\b"],
)
def test_unsafe_entry_names(tmp_path: Path, work_dir: Path, name: str) -> None:
    archive = tmp_path / "Evil.ipa"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("Payload/App.app/Info.plist", b"")
        zf.writestr(zipfile.ZipInfo(name), b"payload")

    with pytest.raises(ExtractionError, match="Unsafe"):
        extract_package(archive, work_dir)
    assert not (tmp_path / "evil.txt").exists()


def test_find_app_root_ignores_nested_apps() -> None:
    names = [
        "Payload/",
        "Payload/App.app/Info.plist",
        "Payload/App.app/Watch/WatchApp.app/Info.plist",
    ]
    assert find_app_root(names, PackageFormat.IPA, Path("x.ipa")) == "Payload/App.app"
