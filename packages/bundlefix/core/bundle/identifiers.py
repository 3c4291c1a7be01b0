"""Identifier naming policy.

Synthesized identifiers take the form ``<main>.<kind tag>.<component name>``.
Everything here is a pure function of its inputs so repeated runs against the
same package produce the same identifiers.
"""

from __future__ import annotations

import re

from bundlefix.core.bundle.models import KIND_TAGS, BundleKind, BundleNode
from bundlefix.core.errors import AllocationError

MAIN_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9._-]+")
SAFE_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9.-]+")

BUNDLE_SUFFIXES = (".app", ".appex", ".framework", ".bundle", ".xctest", ".xpc", ".plugin")

_DISALLOWED = re.compile(r"[^A-Za-z0-9.-]")
_REPEATED_DOTS = re.compile(r"\.{2,}")
_FALLBACK_NAME = "unnamed"


def validate_main_identifier(identifier: str | None) -> str:
    """Check the configured main identifier.

    Args:
        identifier: Main bundle identifier

    Returns:
        The identifier, stripped of surrounding whitespace

    Raises:
        AllocationError: If empty or containing characters outside [A-Za-z0-9._-]
    """
    value = (identifier or "").strip()
    if not value:
        raise AllocationError("Main identifier is empty")
    if not MAIN_IDENTIFIER_PATTERN.fullmatch(value):
        raise AllocationError(
            "Main identifier contains disallowed characters", identifier=value
        )
    return value


def strip_bundle_suffix(name: str) -> str:
    for suffix in BUNDLE_SUFFIXES:
        if name.lower().endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


def _clean(text: str) -> str:
    text = text.replace("_", "-")
    text = _DISALLOWED.sub("", text)
    text = _REPEATED_DOTS.sub(".", text)
    return text.strip(".-")


def sanitize_name(name: str) -> str:
    """Turn a component name into an identifier segment.

    Lowercases, maps underscores to hyphens and strips every character
    outside [a-z0-9.-].

    Example:
        >>> sanitize_name("Google_Sign In")
        'google-signin'
    """
    cleaned = _clean(name.lower())
    return cleaned or _FALLBACK_NAME


def component_name(node: BundleNode, app_path: str) -> str:
    """Path-derived name used in synthesized identifiers.

    Typed components use their own directory name without the bundle suffix.
    Unclassified components use their path below the app root, segments
    joined with hyphens, so unrelated ``Info.plist`` owners stay apart.
    """
    if node.kind is BundleKind.OTHER:
        prefix = app_path.rstrip("/") + "/"
        relative = node.path[len(prefix) :] if node.path.startswith(prefix) else node.path
        segments = [strip_bundle_suffix(part) for part in relative.split("/") if part]
        return sanitize_name("-".join(segments))
    return sanitize_name(strip_bundle_suffix(node.name))


def synthesize_identifier(main_identifier: str, node: BundleNode, app_path: str) -> str:
    """Build ``<main>.<kind tag>.<component name>`` for a non-main node."""
    if node.kind is BundleKind.MAIN:
        return main_identifier
    tag = KIND_TAGS[node.kind]
    return f"{main_identifier}.{tag}.{component_name(node, app_path)}"


def _tail(identifier: str, main_identifier: str) -> tuple[str, str]:
    prefix = main_identifier + "."
    if identifier.startswith(prefix):
        return prefix, identifier[len(prefix) :]
    return "", identifier


def is_distribution_safe(identifier: str, main_identifier: str) -> bool:
    """Whether an identifier only uses [A-Za-z0-9.-].

    The configured main identifier is accepted as a prefix as-is, since it is
    allowed to contain underscores and every synthesized identifier starts
    with it.
    """
    if identifier == main_identifier:
        return True
    _, tail = _tail(identifier, main_identifier)
    return bool(SAFE_IDENTIFIER_PATTERN.fullmatch(tail))


def sanitize_identifier(identifier: str, main_identifier: str) -> str | None:
    """Repair an existing identifier that uses disallowed characters.

    Returns:
        The sanitized identifier, or None if nothing usable survives
    """
    prefix, tail = _tail(identifier, main_identifier)
    cleaned = _clean(tail)
    if not cleaned:
        return None
    return prefix + cleaned
