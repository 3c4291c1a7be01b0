"""Error taxonomy for the collision resolution engine.

Every stage fails fast with one of these types. Each error carries the
offending path and/or identifier when one is known so the CLI can print a
single readable cause.
"""

from __future__ import annotations

from pathlib import Path


class EngineError(Exception):
    """Base class for all engine failures.

    Attributes:
        path: Path the failure relates to (archive, metadata file, output)
        identifier: Bundle identifier the failure relates to
    """

    stage = "engine"

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        identifier: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.identifier = identifier

    def __str__(self) -> str:
        details = []
        if self.path is not None:
            details.append(f"path={self.path}")
        if self.identifier is not None:
            details.append(f"identifier={self.identifier}")
        if details:
            return f"{self.message} ({', '.join(details)})"
        return self.message


class ConfigError(EngineError):
    """Raised when engine configuration cannot be loaded or validated."""

    stage = "config"


class ExtractionError(EngineError):
    """Raised when the input archive is unreadable or malformed."""

    stage = "extract"


class AllocationError(EngineError):
    """Raised when identifiers cannot be allocated."""

    stage = "allocate"


class RewriteError(EngineError):
    """Raised when a metadata file cannot be read or rewritten."""

    stage = "rewrite"


class RepackageError(EngineError):
    """Raised when the output artifact cannot be written or reopened."""

    stage = "repackage"


class VerificationError(EngineError):
    """Raised when the produced artifact violates the identifier invariants.

    Attributes:
        violations: Every invariant violation found (not just the first)
    """

    stage = "verify"

    def __init__(
        self,
        message: str,
        *,
        violations: list[str] | None = None,
        path: Path | str | None = None,
        identifier: str | None = None,
    ) -> None:
        super().__init__(message, path=path, identifier=identifier)
        self.violations = list(violations or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.violations:
            return base
        lines = "\n".join(f"  - {v}" for v in self.violations)
        return f"{base}\n{lines}"
