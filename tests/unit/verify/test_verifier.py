"""Tests for invariant checking of planned and produced output."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import zipfile

import pytest

from bundlefix.core.bundle.allocator import IdentifierAllocator
from bundlefix.core.bundle.models import BundleKind, BundleNode
from bundlefix.core.bundle.scanner import scan_package
from bundlefix.core.errors import VerificationError
from bundlefix.core.metadata.rewriter import rewrite_metadata
from bundlefix.core.package.extractor import extract_package
from bundlefix.core.package.repackager import repackage
from bundlefix.core.verify.verifier import check_nodes, verify_artifact, verify_nodes

APP = "Payload/App.app"
MAIN_ID = "com.example.app"


def _node(relative: str, kind: BundleKind, identifier: str | None) -> BundleNode:
    path = f"{APP}/{relative}" if relative else APP
    return BundleNode(
        path=path, metadata_path=f"{path}/Info.plist", kind=kind, current_identifier=identifier
    )


def test_valid_nodes_pass() -> None:
    nodes = [
        _node("", BundleKind.MAIN, MAIN_ID),
        _node("Frameworks/A.framework", BundleKind.FRAMEWORK, "com.example.app.framework.a"),
    ]
    assert check_nodes(nodes, MAIN_ID) == []
    verify_nodes(nodes, MAIN_ID)


def test_every_violation_is_reported() -> None:
    nodes = [
        _node("", BundleKind.MAIN, "com.example.wrong"),
        _node("Frameworks/A.framework", BundleKind.FRAMEWORK, MAIN_ID),
        _node("Frameworks/B.framework", BundleKind.FRAMEWORK, "com.vendor.dup"),
        _node("Frameworks/C.framework", BundleKind.FRAMEWORK, "com.vendor.dup"),
        _node("Media.bundle", BundleKind.RESOURCE_BUNDLE, None),
        _node("Bad.bundle", BundleKind.RESOURCE_BUNDLE, "com.vendor.bad_name"),
    ]

    with pytest.raises(VerificationError) as exc_info:
        verify_nodes(nodes, MAIN_ID)

    violations = exc_info.value.violations
    assert len(violations) == 6
    assert any("main component" in v for v in violations)
    assert any("uses the main identifier" in v for v in violations)
    assert sum("shares identifier" in v for v in violations) == 2
    assert any("has no identifier" in v for v in violations)
    assert any("disallowed characters" in v for v in violations)


def test_assigned_identifier_takes_precedence() -> None:
    node = _node("Frameworks/A.framework", BundleKind.FRAMEWORK, MAIN_ID).model_copy(
        update={"assigned_identifier": "com.example.app.framework.a"}
    )
    assert check_nodes([_node("", BundleKind.MAIN, MAIN_ID), node], MAIN_ID) == []


def _produce(archive: Path, work_dir: Path, destination: Path):
    package = extract_package(archive, work_dir / "src")
    allocation = IdentifierAllocator(MAIN_ID, package.app_path).allocate(scan_package(package))
    rewrite_metadata(package, allocation.nodes)
    return package, allocation, repackage(package, destination)


def test_verify_artifact_accepts_correct_output(
    collision_ipa: Path, work_dir: Path, tmp_path: Path
) -> None:
    package, allocation, output = _produce(collision_ipa, work_dir, tmp_path / "App_fixed.ipa")

    rescanned = verify_artifact(package, output, MAIN_ID, allocation.nodes, work_dir)

    assert [n.current_identifier for n in rescanned] == [
        n.assigned_identifier for n in allocation.nodes
    ]


def test_verify_artifact_detects_unapplied_changes(
    collision_ipa: Path, work_dir: Path, tmp_path: Path
) -> None:
    package = extract_package(collision_ipa, work_dir / "src")
    allocation = IdentifierAllocator(MAIN_ID, package.app_path).allocate(scan_package(package))
    # Repackage without rewriting
    output = repackage(package, tmp_path / "App_fixed.ipa")

    with pytest.raises(VerificationError) as exc_info:
        verify_artifact(package, output, MAIN_ID, allocation.nodes, work_dir)
    assert any("expected" in v for v in exc_info.value.violations)


def test_verify_artifact_detects_dropped_entries(
    collision_ipa: Path, work_dir: Path, tmp_path: Path
) -> None:
    package, allocation, output = _produce(collision_ipa, work_dir, tmp_path / "App_fixed.ipa")
    trimmed = tmp_path / "Trimmed.ipa"
    with zipfile.ZipFile(output) as src, zipfile.ZipFile(trimmed, "w") as dst:
        for info in src.infolist():
            if not info.filename.endswith("Assets.car"):
                dst.writestr(info, src.read(info))

    with pytest.raises(VerificationError) as exc_info:
        verify_artifact(package, trimmed, MAIN_ID, allocation.nodes, work_dir)
    assert "entry Payload/App.app/Assets.car was dropped" in exc_info.value.violations


def test_verify_artifact_unreadable_output(
    collision_ipa: Path, work_dir: Path, tmp_path: Path
) -> None:
    package = extract_package(collision_ipa, work_dir / "src")
    broken = tmp_path / "Broken.ipa"
    broken.write_bytes(b"garbage")

    with pytest.raises(VerificationError, match="cannot be reopened"):
        verify_artifact(package, broken, MAIN_ID, [], work_dir)
