"""Package extraction, working directories and repackaging."""

from bundlefix.core.package.extractor import extract_package, find_app_root
from bundlefix.core.package.models import ArchiveEntry, Package, PackageFormat
from bundlefix.core.package.repackager import publish_artifact, repackage
from bundlefix.core.package.workspace import working_directory

__all__ = [
    "ArchiveEntry",
    "Package",
    "PackageFormat",
    "extract_package",
    "find_app_root",
    "publish_artifact",
    "repackage",
    "working_directory",
]
