"""Identifier allocation.

Two passes over the scanner's node list:

1. Protect main: the main node gets the configured identifier and is
   registered first.
2. Resolve others, in scan order:
   - absent identifier: synthesize ``<main>.<tag>.<name>``
   - identifier equal to main: synthesize ``<main>.<tag>.<name>``
   - identifier already owned by an earlier sibling: ``<id>.1``, ``<id>.2``, ...
   - identifier with disallowed characters: sanitize it
   - otherwise: keep it
   Every candidate is then made unique with a numeric suffix.

In unconditional mode every non-main node is given its synthesized
identifier. Both modes are deterministic: the same input yields the same
assignments, so a second run changes nothing.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

from bundlefix.core.bundle.identifiers import (
    is_distribution_safe,
    sanitize_identifier,
    synthesize_identifier,
    validate_main_identifier,
)
from bundlefix.core.bundle.models import BundleNode, Resolution
from bundlefix.core.bundle.registry import IdentifierRegistry
from bundlefix.core.config.models import RewriteMode
from bundlefix.core.errors import AllocationError

logger = logging.getLogger(__name__)


class AllocationResult(BaseModel):
    """Allocator output.

    Attributes:
        main_identifier: Validated main identifier
        nodes: Nodes in scan order, each with ``assigned_identifier`` set
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    main_identifier: str
    nodes: list[BundleNode] = Field(default_factory=list)

    @property
    def changed_nodes(self) -> list[BundleNode]:
        return [n for n in self.nodes if n.changed]

    def count(self, resolution: Resolution) -> int:
        return sum(1 for n in self.nodes if n.resolution is resolution)


class IdentifierAllocator:
    """Assigns a unique identifier to every node of a package.

    Args:
        main_identifier: Identifier the main component must carry
        app_path: App root relative to the package root (for path-derived names)
        mode: Rewrite only collisions, or every non-main node
    """

    def __init__(
        self,
        main_identifier: str,
        app_path: str,
        mode: RewriteMode = RewriteMode.COLLISIONS,
    ) -> None:
        self.main_identifier = validate_main_identifier(main_identifier)
        self.app_path = app_path
        self.mode = mode
        self.registry = IdentifierRegistry()

    def allocate(self, nodes: list[BundleNode]) -> AllocationResult:
        """Run both allocation passes.

        Args:
            nodes: Scanner output (main first, then nested in scan order)

        Returns:
            AllocationResult with every node's assigned identifier

        Raises:
            AllocationError: If there are no nodes or not exactly one main node
        """
        if not nodes:
            raise AllocationError("No bundle nodes found (no application root)")

        mains = [n for n in nodes if n.is_main]
        if len(mains) != 1:
            raise AllocationError(f"Expected exactly one main component, found {len(mains)}")

        # Pass 1
        main = mains[0]
        main_resolution = (
            Resolution.MAIN
            if main.current_identifier == self.main_identifier
            else Resolution.MAIN_ENFORCED
        )
        assigned_main = main.model_copy(
            update={"assigned_identifier": self.main_identifier, "resolution": main_resolution}
        )
        self.registry.register(self.main_identifier, assigned_main)
        if main_resolution is Resolution.MAIN_ENFORCED:
            logger.info(
                f"Main component {main.path}: {main.current_identifier} -> {self.main_identifier}"
            )

        # Pass 2
        resolved: dict[str, BundleNode] = {main.path: assigned_main}
        for node in nodes:
            if node.is_main:
                continue
            identifier, resolution = self._resolve(node)
            assigned = node.model_copy(
                update={"assigned_identifier": identifier, "resolution": resolution}
            )
            self.registry.register(identifier, assigned)
            resolved[node.path] = assigned
            if assigned.changed:
                logger.info(
                    f"{resolution.value}: {node.path}: {node.current_identifier} -> {identifier}"
                )

        logger.debug(f"Allocated {len(self.registry)} identifiers for {len(nodes)} components")
        return AllocationResult(
            main_identifier=self.main_identifier,
            nodes=[resolved[n.path] for n in nodes],
        )

    def _resolve(self, node: BundleNode) -> tuple[str, Resolution]:
        current = node.current_identifier
        synthesized = synthesize_identifier(self.main_identifier, node, self.app_path)

        if self.mode is RewriteMode.UNCONDITIONAL:
            return self.registry.next_available(synthesized), Resolution.FORCED

        if not current:
            return self.registry.next_available(synthesized), Resolution.MISSING

        if current == self.main_identifier:
            return self.registry.next_available(synthesized), Resolution.MAIN_COLLISION

        if not is_distribution_safe(current, self.main_identifier):
            repaired = sanitize_identifier(current, self.main_identifier) or synthesized
            if repaired == self.main_identifier:
                repaired = synthesized
            return self.registry.next_available(repaired), Resolution.INVALID

        if current in self.registry:
            owner = self.registry.owner(current)
            logger.debug(f"{node.path} shares {current} with {owner.path if owner else '?'}")
            return self.registry.next_available(current), Resolution.SIBLING_COLLISION

        return current, Resolution.UNCHANGED
