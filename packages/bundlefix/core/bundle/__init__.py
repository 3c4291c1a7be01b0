"""Bundle graph: discovery, classification and identifier allocation."""

from bundlefix.core.bundle.allocator import AllocationResult, IdentifierAllocator
from bundlefix.core.bundle.identifiers import (
    is_distribution_safe,
    sanitize_identifier,
    sanitize_name,
    synthesize_identifier,
    validate_main_identifier,
)
from bundlefix.core.bundle.models import KIND_TAGS, BundleKind, BundleNode, Resolution
from bundlefix.core.bundle.registry import IdentifierRegistry
from bundlefix.core.bundle.scanner import classify, scan_package

__all__ = [
    "KIND_TAGS",
    "AllocationResult",
    "BundleKind",
    "BundleNode",
    "IdentifierAllocator",
    "IdentifierRegistry",
    "Resolution",
    "classify",
    "is_distribution_safe",
    "sanitize_identifier",
    "sanitize_name",
    "scan_package",
    "synthesize_identifier",
    "validate_main_identifier",
]
