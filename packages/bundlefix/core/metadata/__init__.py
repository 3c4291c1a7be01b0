"""Info.plist metadata access and rewriting."""

from bundlefix.core.metadata.plist import (
    IDENTIFIER_KEY,
    METADATA_FILENAME,
    load_metadata,
    read_identifier,
    write_identifier,
)
from bundlefix.core.metadata.rewriter import rewrite_metadata

__all__ = [
    "IDENTIFIER_KEY",
    "METADATA_FILENAME",
    "load_metadata",
    "read_identifier",
    "rewrite_metadata",
    "write_identifier",
]
