"""Shared pytest fixtures for bundlefix tests.

Packages are built on the fly with ``zipfile`` + ``plistlib`` so every test
owns its input artifact.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
import plistlib
import shutil
import zipfile

import pytest

from bundlefix.core.config.models import EngineConfig
from bundlefix.core.metadata.plist import IDENTIFIER_KEY

MAIN_ID = "com.example.app"

# Components keyed by path below the app root ("" is the app root itself),
# valued by the identifier their Info.plist declares (None: key absent).
Components = dict[str, str | None]


def info_plist(identifier: str | None, name: str = "Component", binary: bool = False) -> bytes:
    """Serialise a small Info.plist."""
    data: dict[str, object] = {
        "CFBundleName": name,
        "CFBundleShortVersionString": "1.0",
        "CFBundleVersion": "42",
        "UIRequiredDeviceCapabilities": ["arm64"],
    }
    if identifier is not None:
        data[IDENTIFIER_KEY] = identifier
    fmt = plistlib.FMT_BINARY if binary else plistlib.FMT_XML
    return plistlib.dumps(data, fmt=fmt, sort_keys=False)


def _write_ipa(
    path: Path,
    components: Components,
    app_name: str,
    extra_files: dict[str, bytes] | None,
    binary: bool,
) -> Path:
    app = f"Payload/{app_name}.app"
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("Payload/", b"")
        zf.writestr(f"{app}/", b"")
        zf.writestr(f"{app}/{app_name}", b"\xcf\xfa\xed\xfe" + b"\x00" * 64)
        for relative, identifier in components.items():
            base = f"{app}/{relative}" if relative else app
            if relative:
                zf.writestr(f"{base}/", b"")
            name = relative.rsplit("/", 1)[-1] if relative else app_name
            zf.writestr(f"{base}/Info.plist", info_plist(identifier, name, binary))
        # Stored (uncompressed) entry, as signing tools emit for some resources
        zf.writestr(
            zipfile.ZipInfo(f"{app}/Assets.car", date_time=(2024, 5, 1, 12, 0, 0)),
            b"asset catalog",
            compress_type=zipfile.ZIP_STORED,
        )
        for name, data in (extra_files or {}).items():
            zf.writestr(name, data)
    return path


# ============================================================================
# Package Fixtures
# ============================================================================


@pytest.fixture
def make_ipa(tmp_path: Path) -> Callable[..., Path]:
    """Factory building an ``.ipa`` in ``tmp_path``."""

    def _make(
        components: Components,
        *,
        app_name: str = "App",
        filename: str = "App.ipa",
        extra_files: dict[str, bytes] | None = None,
        binary: bool = False,
    ) -> Path:
        return _write_ipa(tmp_path / filename, components, app_name, extra_files, binary)

    return _make


@pytest.fixture
def make_xcarchive(tmp_path: Path) -> Callable[..., Path]:
    """Factory building an ``.xcarchive`` directory in ``tmp_path``."""

    def _make(
        components: Components,
        *,
        app_name: str = "App",
        dirname: str = "App.xcarchive",
    ) -> Path:
        archive = tmp_path / dirname
        app = archive / "Products" / "Applications" / f"{app_name}.app"
        app.mkdir(parents=True)
        (app / app_name).write_bytes(b"\xcf\xfa\xed\xfe")
        (archive / "Info.plist").write_bytes(
            plistlib.dumps({"ArchiveVersion": 2, "Name": app_name})
        )
        for relative, identifier in components.items():
            base = app / relative if relative else app
            base.mkdir(parents=True, exist_ok=True)
            name = relative.rsplit("/", 1)[-1] if relative else app_name
            (base / "Info.plist").write_bytes(info_plist(identifier, name))
        return archive

    return _make


@pytest.fixture
def collision_ipa(make_ipa: Callable[..., Path]) -> Path:
    """Main plus two frameworks that both reuse the main identifier."""
    return make_ipa(
        {
            "": MAIN_ID,
            "Frameworks/Foo.framework": MAIN_ID,
            "Frameworks/Bar.framework": MAIN_ID,
        }
    )


@pytest.fixture
def engine_config(tmp_path: Path) -> EngineConfig:
    """Engine config with working directories kept under ``tmp_path``."""
    return EngineConfig(work_dir_root=tmp_path / "work")


@pytest.fixture
def work_dir(tmp_path: Path) -> Iterator[Path]:
    path = tmp_path / "run"
    path.mkdir()
    yield path
    shutil.rmtree(path, ignore_errors=True)


# ============================================================================
# Helpers
# ============================================================================


def read_ipa_identifiers(path: Path) -> dict[str, str | None]:
    """Map each Info.plist entry in an ``.ipa`` to its identifier."""
    result: dict[str, str | None] = {}
    with zipfile.ZipFile(path) as zf:
        for name in zf.namelist():
            if name.endswith("/Info.plist"):
                result[name] = plistlib.loads(zf.read(name)).get(IDENTIFIER_KEY)
    return result


@pytest.fixture
def ipa_identifiers() -> Callable[[Path], dict[str, str | None]]:
    return read_ipa_identifiers
