"""Identifier registry.

Maps each identifier to the node that owns it. Built incrementally by the
allocator and owned by a single run.
"""

from __future__ import annotations

import logging

from bundlefix.core.bundle.models import BundleNode
from bundlefix.core.errors import AllocationError

logger = logging.getLogger(__name__)


class IdentifierRegistry:
    """Identifier → owning node mapping for one package.

    Example:
        >>> registry = IdentifierRegistry()
        >>> registry.register("com.example.app", main_node)
        >>> registry.next_available("com.example.app")
        'com.example.app.1'
    """

    def __init__(self) -> None:
        self._owners: dict[str, BundleNode] = {}

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._owners

    def __len__(self) -> int:
        return len(self._owners)

    def owner(self, identifier: str) -> BundleNode | None:
        """Return the node that owns an identifier, if any."""
        return self._owners.get(identifier)

    def register(self, identifier: str, node: BundleNode) -> None:
        """Record that a node owns an identifier.

        Raises:
            AllocationError: If a different node already owns the identifier
        """
        existing = self._owners.get(identifier)
        if existing is not None and existing.path != node.path:
            raise AllocationError(
                f"Identifier already owned by {existing.path}",
                path=node.path,
                identifier=identifier,
            )
        self._owners[identifier] = node
        logger.debug(f"Registered {identifier} -> {node.path}")

    def next_available(self, base: str) -> str:
        """Return ``base`` if free, else the first free ``base.N`` (N = 1, 2, ...).

        With N registered identifiers at most N + 1 candidates are probed.
        """
        if base not in self._owners:
            return base
        counter = 1
        while f"{base}.{counter}" in self._owners:
            counter += 1
        return f"{base}.{counter}"
