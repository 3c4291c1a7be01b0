"""Bundle graph models.

A BundleNode is one metadata-bearing component discovered inside a package.
Nodes are immutable: the allocator returns updated copies rather than
mutating the scanner's output.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BundleKind(str, Enum):
    """Component classification, inferred from path patterns only."""

    MAIN = "main"
    FRAMEWORK = "framework"
    EXTENSION = "extension"
    RESOURCE_BUNDLE = "resource_bundle"
    TEST_BUNDLE = "test_bundle"
    OTHER = "other"


# Segment used in synthesized identifiers: <main>.<tag>.<name>
KIND_TAGS: dict[BundleKind, str] = {
    BundleKind.FRAMEWORK: "framework",
    BundleKind.EXTENSION: "plugin",
    BundleKind.RESOURCE_BUNDLE: "bundle",
    BundleKind.TEST_BUNDLE: "tests",
    BundleKind.OTHER: "component",
}


class Resolution(str, Enum):
    """Why a node ended up with its assigned identifier.

    Values:
        PENDING: Not yet processed by the allocator
        UNCHANGED: Existing identifier kept as-is
        MAIN: Main component, identifier already correct
        MAIN_ENFORCED: Main component rewritten to the configured identifier
        MAIN_COLLISION: Component shared the main identifier
        SIBLING_COLLISION: Component shared an identifier with an earlier sibling
        MISSING: Component declared no identifier
        INVALID: Identifier contained characters outside [A-Za-z0-9.-]
        FORCED: Rewritten unconditionally (aggressive mode)
    """

    PENDING = "pending"
    UNCHANGED = "unchanged"
    MAIN = "main"
    MAIN_ENFORCED = "main_enforced"
    MAIN_COLLISION = "main_collision"
    SIBLING_COLLISION = "sibling_collision"
    MISSING = "missing"
    INVALID = "invalid"
    FORCED = "forced"

    @property
    def is_collision(self) -> bool:
        return self in (Resolution.MAIN_COLLISION, Resolution.SIBLING_COLLISION)


class BundleNode(BaseModel):
    """One discovered component.

    Attributes:
        path: Component root, relative to the package root (POSIX style)
        metadata_path: Info.plist location, relative to the package root
        kind: Path-derived classification
        current_identifier: CFBundleIdentifier read from metadata (None if absent)
        assigned_identifier: Identifier after allocation (None until allocated)
        resolution: Reason for the assigned identifier
        readable: False when the metadata file could not be parsed

    Example:
        >>> node = BundleNode(
        ...     path="Payload/App.app/Frameworks/Analytics.framework",
        ...     metadata_path="Payload/App.app/Frameworks/Analytics.framework/Info.plist",
        ...     kind=BundleKind.FRAMEWORK,
        ...     current_identifier="com.example.app",
        ... )
        >>> node.name
        'Analytics.framework'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(description="Component root relative to package root")
    metadata_path: str = Field(description="Metadata file relative to package root")
    kind: BundleKind = Field(description="Path-derived component kind")
    current_identifier: str | None = Field(default=None, description="Identifier read from disk")
    assigned_identifier: str | None = Field(default=None, description="Identifier after allocation")
    resolution: Resolution = Field(default=Resolution.PENDING)
    readable: bool = Field(default=True, description="Metadata parsed successfully")

    @property
    def name(self) -> str:
        """Directory name of the component root."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def is_main(self) -> bool:
        return self.kind is BundleKind.MAIN

    @property
    def changed(self) -> bool:
        """Whether the rewriter must touch this node's metadata."""
        return (
            self.assigned_identifier is not None
            and self.assigned_identifier != self.current_identifier
        )
