"""Run report models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from bundlefix.core.bundle.models import BundleKind, BundleNode, Resolution
from bundlefix.core.config.models import RewriteMode, ScanScope


class NodeReport(BaseModel):
    """Before/after row for one component."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    kind: BundleKind
    before: str | None = Field(description="Identifier read from the input")
    after: str | None = Field(description="Identifier in the output")
    resolution: Resolution
    changed: bool


class RunReport(BaseModel):
    """Structured summary of one engine run.

    Attributes:
        archive: Input artifact
        output: Published artifact (None for dry runs)
        main_identifier: Configured main identifier
        mode: Rewrite mode used
        scope: Scan scope used
        dry_run: True when nothing was written
        verified: True once the invariants were checked successfully
        collisions_found: Components sharing the main or a sibling's identifier
        collisions_fixed: Collisions resolved in the published output
        missing_fixed: Components that had no identifier and received one
        invalid_fixed: Components whose identifier had disallowed characters
        forced: Components rewritten by unconditional mode
        changed: Components whose identifier differs between input and output
        total_nodes: Components discovered
        unique_identifiers: Distinct identifiers in the output
        nodes: Per-component before/after table
        stage_timings_ms: Duration of each pipeline stage
    """

    model_config = ConfigDict(extra="forbid")

    archive: str
    output: str | None = None
    main_identifier: str
    mode: RewriteMode
    scope: ScanScope
    dry_run: bool = False
    verified: bool = False
    collisions_found: int = 0
    collisions_fixed: int = 0
    missing_fixed: int = 0
    invalid_fixed: int = 0
    forced: int = 0
    changed: int = 0
    total_nodes: int = 0
    unique_identifiers: int = 0
    nodes: list[NodeReport] = Field(default_factory=list)
    stage_timings_ms: dict[str, float] = Field(default_factory=dict)


def build_report(
    *,
    archive: str,
    main_identifier: str,
    nodes: list[BundleNode],
    mode: RewriteMode,
    scope: ScanScope,
    applied: bool,
    output: str | None = None,
) -> RunReport:
    """Summarise allocated nodes into a RunReport.

    Args:
        archive: Input artifact path
        main_identifier: Configured main identifier
        nodes: Allocated nodes (scan order)
        mode: Rewrite mode
        scope: Scan scope
        applied: Whether the changes were written and verified (False for dry runs)
        output: Output artifact path, if any

    Returns:
        RunReport (``verified`` mirrors ``applied``)
    """
    rows = [
        NodeReport(
            path=node.path,
            kind=node.kind,
            before=node.current_identifier,
            after=node.assigned_identifier,
            resolution=node.resolution,
            changed=node.changed,
        )
        for node in nodes
    ]

    def fixed(resolution: Resolution) -> int:
        if not applied:
            return 0
        return sum(1 for n in nodes if n.resolution is resolution and n.changed)

    collisions = [n for n in nodes if n.resolution.is_collision]
    after = {n.assigned_identifier for n in nodes if n.assigned_identifier is not None}

    return RunReport(
        archive=archive,
        output=output,
        main_identifier=main_identifier,
        mode=mode,
        scope=scope,
        dry_run=not applied,
        verified=applied,
        collisions_found=len(collisions),
        collisions_fixed=sum(1 for n in collisions if n.changed) if applied else 0,
        missing_fixed=fixed(Resolution.MISSING),
        invalid_fixed=fixed(Resolution.INVALID),
        forced=fixed(Resolution.FORCED),
        changed=sum(1 for n in nodes if n.changed),
        total_nodes=len(nodes),
        unique_identifiers=len(after),
        nodes=rows,
    )
