"""Bundle graph scanner.

Walks the application root breadth-first (children sorted by name) and
records one BundleNode per metadata-bearing directory. The main component is
always first. Classification is a pure function of the path.
"""

from __future__ import annotations

from collections import deque
import logging
from pathlib import Path, PurePosixPath

from bundlefix.core.bundle.identifiers import BUNDLE_SUFFIXES, strip_bundle_suffix
from bundlefix.core.bundle.models import BundleKind, BundleNode
from bundlefix.core.config.models import ScanConfig, ScanScope
from bundlefix.core.errors import RewriteError
from bundlefix.core.metadata.plist import METADATA_FILENAME, read_identifier
from bundlefix.core.package.models import Package

logger = logging.getLogger(__name__)

_EXTENSION_DIRS = {"plugins", "extensions"}
_FRAMEWORK_DIRS = {"frameworks"}


def classify(relative_path: str) -> BundleKind:
    """Classify a nested component from its path below the app root.

    Rules, first match wins:
    1. ``.xctest`` suffix, or name ending in ``Tests`` → test bundle
    2. ``.appex`` / ``.xpc`` suffix → extension
    3. ``.framework`` suffix → framework
    4. ``.bundle`` suffix → resource bundle
    5. parent directory ``PlugIns`` / ``Extensions`` → extension
    6. parent directory ``Frameworks`` → framework
    7. anything else → other

    Example:
        >>> classify("Frameworks/Analytics.framework")
        <BundleKind.FRAMEWORK: 'framework'>
    """
    parts = PurePosixPath(relative_path).parts
    if not parts:
        return BundleKind.OTHER
    name = parts[-1]
    lower = name.lower()
    parent = parts[-2].lower() if len(parts) > 1 else ""

    if lower.endswith(".xctest") or strip_bundle_suffix(name).endswith("Tests"):
        return BundleKind.TEST_BUNDLE
    if lower.endswith((".appex", ".xpc")):
        return BundleKind.EXTENSION
    if lower.endswith(".framework"):
        return BundleKind.FRAMEWORK
    if lower.endswith(".bundle"):
        return BundleKind.RESOURCE_BUNDLE
    if parent in _EXTENSION_DIRS:
        return BundleKind.EXTENSION
    if parent in _FRAMEWORK_DIRS:
        return BundleKind.FRAMEWORK
    return BundleKind.OTHER


def _has_bundle_suffix(name: str) -> bool:
    return name.lower().endswith(BUNDLE_SUFFIXES)


def _metadata_file(directory: Path) -> Path | None:
    direct = directory / METADATA_FILENAME
    if direct.is_file():
        return direct
    # macOS-style bundles keep metadata under Contents/
    nested = directory / "Contents" / METADATA_FILENAME
    if _has_bundle_suffix(directory.name) and nested.is_file():
        return nested
    return None


def _in_scope(relative: str, subtrees: list[str]) -> tuple[bool, bool]:
    """Return (inside a subtree, on the way to one)."""
    if not subtrees:
        return True, True
    for subtree in subtrees:
        if relative == subtree or relative.startswith(subtree + "/"):
            return True, True
    descend = any(subtree.startswith(relative + "/") for subtree in subtrees)
    return False, descend


def _make_node(
    package: Package, directory: Path, metadata: Path | None, kind: BundleKind
) -> BundleNode:
    metadata_path = metadata if metadata is not None else directory / METADATA_FILENAME
    identifier: str | None = None
    readable = True
    if metadata is None:
        readable = False
        logger.warning(f"{package.relative(directory)}: no {METADATA_FILENAME}")
    else:
        try:
            identifier = read_identifier(metadata)
        except RewriteError as e:
            readable = False
            logger.warning(f"Unreadable metadata: {e}")

    return BundleNode(
        path=package.relative(directory),
        metadata_path=package.relative(metadata_path),
        kind=kind,
        current_identifier=identifier,
        readable=readable,
    )


def scan_package(package: Package, config: ScanConfig | None = None) -> list[BundleNode]:
    """Discover every component of a package.

    Args:
        package: Extracted package
        config: Scope and subtree restrictions (default: full scan)

    Returns:
        Nodes ordered main first, then breadth-first by sorted directory name
    """
    config = config or ScanConfig()
    app_root = package.app_root

    nodes = [_make_node(package, app_root, _metadata_file(app_root), BundleKind.MAIN)]
    claimed = {nodes[0].metadata_path}

    queue: deque[Path] = deque([app_root])
    while queue:
        directory = queue.popleft()
        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            if child.is_symlink() or not child.is_dir():
                continue
            relative = child.relative_to(app_root).as_posix()
            inside, descend = _in_scope(relative, config.subtrees)
            if descend:
                queue.append(child)
            if not inside:
                continue

            metadata = _metadata_file(child)
            if metadata is None:
                continue
            if config.scope is ScanScope.BUNDLES and not _has_bundle_suffix(child.name):
                continue
            metadata_relative = package.relative(metadata)
            if metadata_relative in claimed:
                continue
            claimed.add(metadata_relative)
            nodes.append(_make_node(package, child, metadata, classify(relative)))

    logger.info(
        f"Scanned {package.app_name}: {len(nodes)} component(s), "
        f"{sum(1 for n in nodes if n.current_identifier is None)} without identifier"
    )
    return nodes
