"""Package models.

A Package is the working-directory copy of an input artifact plus the
manifest needed to rebuild it with the same structure.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field


class PackageFormat(str, Enum):
    """Input artifact format.

    Values:
        IPA: Zip container with a ``Payload/<Name>.app`` tree
        XCARCHIVE: Xcode archive directory with ``Products/Applications/<Name>.app``
    """

    IPA = "ipa"
    XCARCHIVE = "xcarchive"


class ArchiveEntry(BaseModel):
    """One entry of the source archive, as needed to write it back.

    Attributes:
        name: Entry name exactly as stored (directories end with "/")
        is_dir: Whether the entry is a directory
        compress_type: Zip compression method
        date_time: Zip timestamp (year, month, day, hour, minute, second)
        external_attr: Zip external attributes (permissions, symlink bit)
        create_system: Zip creator system
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    is_dir: bool = False
    compress_type: int = 0
    date_time: tuple[int, int, int, int, int, int] = (1980, 1, 1, 0, 0, 0)
    external_attr: int = 0
    create_system: int = 3

    @property
    def relative_path(self) -> str:
        return self.name.rstrip("/")


class Package(BaseModel):
    """Extracted package rooted in a working directory.

    Attributes:
        root_dir: Working-directory root holding the extracted tree
        source: Original artifact path (never modified)
        format: Artifact format
        app_path: Single application root relative to ``root_dir`` (POSIX style)
        entries: Manifest of the source artifact, in original order
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_dir: Path
    source: Path
    format: PackageFormat
    app_path: str
    entries: list[ArchiveEntry] = Field(default_factory=list)

    @property
    def app_root(self) -> Path:
        return self.resolve(self.app_path)

    @property
    def app_name(self) -> str:
        return PurePosixPath(self.app_path).name

    def resolve(self, relative: str) -> Path:
        """Absolute location of a package-relative POSIX path."""
        return self.root_dir.joinpath(*PurePosixPath(relative).parts)

    def relative(self, path: Path) -> str:
        """Package-relative POSIX path of an absolute location."""
        return path.relative_to(self.root_dir).as_posix()

    def entry_names(self) -> set[str]:
        """Entry names of the source artifact (directories keep their "/")."""
        return {entry.name for entry in self.entries}
