"""Metadata rewriter: applies allocator decisions to Info.plist files."""

from __future__ import annotations

import logging

from bundlefix.core.bundle.models import BundleNode
from bundlefix.core.errors import RewriteError
from bundlefix.core.metadata.plist import write_identifier
from bundlefix.core.package.models import Package

logger = logging.getLogger(__name__)


def rewrite_metadata(package: Package, nodes: list[BundleNode]) -> list[BundleNode]:
    """Write every changed node's assigned identifier into its metadata file.

    Only nodes whose assigned identifier differs from the one read by the
    scanner are touched. Running it again over already-correct metadata
    writes nothing.

    Args:
        package: Extracted package
        nodes: Allocated nodes

    Returns:
        Nodes whose metadata file actually changed

    Raises:
        RewriteError: For the first metadata file that cannot be rewritten
    """
    written: list[BundleNode] = []
    for node in nodes:
        if not node.changed:
            continue
        if node.assigned_identifier is None:
            raise RewriteError("Node has no assigned identifier", path=node.metadata_path)
        metadata = package.resolve(node.metadata_path)
        if write_identifier(metadata, node.assigned_identifier):
            logger.debug(f"Rewrote {node.metadata_path}: {node.assigned_identifier}")
            written.append(node)

    logger.info(f"Rewrote {len(written)} metadata file(s)")
    return written
