"""Tests for identifier naming and sanitisation."""

from __future__ import annotations

import pytest

from bundlefix.core.bundle.identifiers import (
    component_name,
    is_distribution_safe,
    sanitize_identifier,
    sanitize_name,
    strip_bundle_suffix,
    synthesize_identifier,
    validate_main_identifier,
)
from bundlefix.core.bundle.models import BundleKind, BundleNode
from bundlefix.core.errors import AllocationError

APP = "Payload/App.app"
MAIN_ID = "com.example.app"


def _node(relative: str, kind: BundleKind) -> BundleNode:
    path = f"{APP}/{relative}"
    return BundleNode(path=path, metadata_path=f"{path}/Info.plist", kind=kind)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Foo", "foo"),
        ("Google_SignIn", "google-signin"),
        ("My Widget", "mywidget"),
        ("a..b", "a.b"),
        ("_Leading_", "leading"),
        ("✓", "unnamed"),
    ],
)
def test_sanitize_name(raw: str, expected: str) -> None:
    assert sanitize_name(raw) == expected


def test_strip_bundle_suffix() -> None:
    assert strip_bundle_suffix("Foo.framework") == "Foo"
    assert strip_bundle_suffix("Share.appex") == "Share"
    assert strip_bundle_suffix("Plain") == "Plain"
    assert strip_bundle_suffix(".bundle") == ".bundle"


def test_synthesize_framework_identifier() -> None:
    node = _node("Frameworks/Foo.framework", BundleKind.FRAMEWORK)
    assert synthesize_identifier(MAIN_ID, node, APP) == "com.example.app.framework.foo"


def test_synthesize_uses_kind_tags() -> None:
    assert (
        synthesize_identifier(MAIN_ID, _node("PlugIns/Share.appex", BundleKind.EXTENSION), APP)
        == "com.example.app.plugin.share"
    )
    assert (
        synthesize_identifier(MAIN_ID, _node("Media.bundle", BundleKind.RESOURCE_BUNDLE), APP)
        == "com.example.app.bundle.media"
    )
    assert (
        synthesize_identifier(MAIN_ID, _node("AppTests.xctest", BundleKind.TEST_BUNDLE), APP)
        == "com.example.app.tests.apptests"
    )


def test_other_components_use_full_relative_path() -> None:
    node = _node("Resources/Watch/Face", BundleKind.OTHER)
    assert component_name(node, APP) == "resources-watch-face"
    assert synthesize_identifier(MAIN_ID, node, APP) == (
        "com.example.app.component.resources-watch-face"
    )


def test_synthesize_is_deterministic() -> None:
    node = _node("Frameworks/Google_SignIn.framework", BundleKind.FRAMEWORK)
    first = synthesize_identifier(MAIN_ID, node, APP)
    second = synthesize_identifier(MAIN_ID, node, APP)
    assert first == second == "com.example.app.framework.google-signin"


def test_validate_main_identifier_accepts_underscores() -> None:
    assert validate_main_identifier("  com.example.my_app ") == "com.example.my_app"


@pytest.mark.parametrize("bad", ["", "   ", None, "com.example app", "com/example"])
def test_validate_main_identifier_rejects(bad: str | None) -> None:
    with pytest.raises(AllocationError):
        validate_main_identifier(bad)


def test_distribution_safe() -> None:
    assert is_distribution_safe("com.example.app.framework.foo", MAIN_ID)
    assert not is_distribution_safe("com.example.foo_bar", MAIN_ID)
    # The main identifier is exempt, even as a prefix
    assert is_distribution_safe("com.example.my_app", "com.example.my_app")
    assert is_distribution_safe("com.example.my_app.framework.foo", "com.example.my_app")


def test_sanitize_identifier() -> None:
    assert sanitize_identifier("com.vendor.sdk_core", MAIN_ID) == "com.vendor.sdk-core"
    assert sanitize_identifier("com.example.my_app.x_y", "com.example.my_app") == (
        "com.example.my_app.x-y"
    )
    assert sanitize_identifier("___", MAIN_ID) is None
