"""Invariant verification."""

from bundlefix.core.verify.verifier import check_nodes, verify_artifact, verify_nodes

__all__ = ["check_nodes", "verify_artifact", "verify_nodes"]
