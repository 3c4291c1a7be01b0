"""Verifier: checks the identifier invariants on planned or produced output."""

from __future__ import annotations

from collections import Counter
import logging
from pathlib import Path

from bundlefix.core.bundle.identifiers import is_distribution_safe
from bundlefix.core.bundle.models import BundleKind, BundleNode
from bundlefix.core.bundle.scanner import scan_package
from bundlefix.core.config.models import ScanConfig
from bundlefix.core.errors import ExtractionError, VerificationError
from bundlefix.core.package.extractor import extract_package
from bundlefix.core.package.models import Package

logger = logging.getLogger(__name__)

VERIFY_DIRNAME = "verify"


def _effective(node: BundleNode) -> str | None:
    if node.assigned_identifier is not None:
        return node.assigned_identifier
    return node.current_identifier


def check_nodes(nodes: list[BundleNode], main_identifier: str) -> list[str]:
    """Collect every identifier invariant violation.

    Uses each node's assigned identifier when set (planned state), otherwise
    the identifier read from disk (produced state).

    Returns:
        Human-readable violations (empty when the invariants hold)
    """
    violations: list[str] = []

    mains = [n for n in nodes if n.kind is BundleKind.MAIN]
    if len(mains) != 1:
        violations.append(f"expected exactly one main component, found {len(mains)}")
    for main in mains:
        if _effective(main) != main_identifier:
            violations.append(
                f"main component {main.path} has {_effective(main)!r}, expected {main_identifier!r}"
            )

    others = [n for n in nodes if n.kind is not BundleKind.MAIN]
    counts = Counter(_effective(n) for n in others if _effective(n) is not None)
    for node in others:
        identifier = _effective(node)
        if identifier is None:
            violations.append(f"{node.path} has no identifier")
            continue
        if identifier == main_identifier:
            violations.append(f"{node.path} uses the main identifier {identifier}")
        elif counts[identifier] > 1:
            violations.append(f"{node.path} shares identifier {identifier}")
        if not is_distribution_safe(identifier, main_identifier):
            violations.append(f"{node.path} has disallowed characters in {identifier}")

    return violations


def verify_nodes(nodes: list[BundleNode], main_identifier: str) -> None:
    """Raise VerificationError if the nodes violate the invariants."""
    violations = check_nodes(nodes, main_identifier)
    if violations:
        raise VerificationError(
            f"{len(violations)} identifier invariant violation(s)",
            violations=violations,
            identifier=main_identifier,
        )


def verify_artifact(
    package: Package,
    artifact: Path,
    main_identifier: str,
    expected: list[BundleNode],
    work_dir: Path,
    scan_config: ScanConfig | None = None,
) -> list[BundleNode]:
    """Reopen a produced artifact and check it against the plan.

    Checks, in addition to the identifier invariants:
    - the same components exist (none added or removed)
    - each component carries its assigned identifier
    - the artifact holds exactly the source artifact's entries

    Args:
        package: Package the artifact was built from
        artifact: Produced artifact
        main_identifier: Configured main identifier
        expected: Allocated nodes
        work_dir: Scratch directory for re-extraction
        scan_config: Scan settings used for the run

    Returns:
        Nodes re-scanned from the artifact

    Raises:
        VerificationError: If the artifact cannot be reopened or any check fails
    """
    scratch = work_dir / VERIFY_DIRNAME
    try:
        reopened = extract_package(artifact, scratch)
    except ExtractionError as e:
        raise VerificationError(f"Output cannot be reopened: {e.message}", path=artifact) from e

    rescanned = scan_package(reopened, scan_config)
    violations = check_nodes(rescanned, main_identifier)

    planned = {n.path: n for n in expected}
    found = {n.path: n for n in rescanned}
    for path in sorted(planned.keys() - found.keys()):
        violations.append(f"component {path} is missing from the output")
    for path in sorted(found.keys() - planned.keys()):
        violations.append(f"component {path} was not in the input")
    for path in sorted(planned.keys() & found.keys()):
        want = planned[path].assigned_identifier
        got = found[path].current_identifier
        if want != got:
            violations.append(f"{path} carries {got!r}, expected {want!r}")

    source_entries = package.entry_names()
    output_entries = reopened.entry_names()
    for name in sorted(source_entries - output_entries):
        violations.append(f"entry {name} was dropped")
    for name in sorted(output_entries - source_entries):
        violations.append(f"entry {name} was added")

    if violations:
        raise VerificationError(
            f"{len(violations)} violation(s) in {artifact.name}",
            violations=violations,
            path=artifact,
        )

    logger.info(f"Verified {artifact.name}: {len(rescanned)} component(s), invariants hold")
    return rescanned
