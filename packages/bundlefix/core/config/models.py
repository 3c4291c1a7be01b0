"""Configuration models for bundlefix."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RewriteMode(str, Enum):
    """How aggressively identifiers are rewritten.

    Values:
        COLLISIONS: Rewrite only missing, invalid or colliding identifiers (default)
        UNCONDITIONAL: Give every non-main component its path-derived identifier
    """

    COLLISIONS = "collisions"
    UNCONDITIONAL = "unconditional"


class ScanScope(str, Enum):
    """Which directories count as components.

    Values:
        FULL: Every directory under the app root holding an Info.plist
        BUNDLES: Only directories with a bundle suffix (.framework, .appex, ...)
    """

    FULL = "full"
    BUNDLES = "bundles"


class ReportFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"


class ScanConfig(BaseModel):
    """Bundle graph scan configuration.

    Attributes:
        scope: Which directories are treated as components
        subtrees: Paths relative to the app root to restrict the nested walk
            to (e.g. ["Frameworks", "PlugIns"]). Empty means the whole app.
    """

    model_config = ConfigDict(extra="forbid")

    scope: ScanScope = Field(default=ScanScope.FULL, description="Component discovery scope")
    subtrees: list[str] = Field(
        default_factory=list, description="App-relative subtrees to scan (empty = all)"
    )

    @field_validator("subtrees")
    @classmethod
    def _normalize_subtrees(cls, value: list[str]) -> list[str]:
        cleaned = []
        for entry in value:
            parts = [p for p in entry.replace("\\", "/").split("/") if p and p != "."]
            if any(p == ".." for p in parts):
                raise ValueError(f"Subtree must stay inside the app bundle: {entry}")
            if parts:
                cleaned.append("/".join(parts))
        return cleaned


class ReportConfig(BaseModel):
    """Run report output configuration."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Write a report file next to the output")
    format: ReportFormat = Field(default=ReportFormat.JSON, description="Report file format")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string (ignored when structured)",
    )
    structured: bool = Field(default=False, description="Emit JSON log lines")
    filename: str | None = Field(default=None, description="Log file (default: stderr)")

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class EngineConfig(BaseModel):
    """Top-level engine configuration.

    Example:
        >>> config = EngineConfig.model_validate(
        ...     {"mode": "unconditional", "scan": {"subtrees": ["Frameworks"]}}
        ... )
        >>> config.mode
        <RewriteMode.UNCONDITIONAL: 'unconditional'>
    """

    model_config = ConfigDict(extra="forbid")

    main_identifier: str | None = Field(
        default=None, description="Main bundle identifier (CLI argument wins)"
    )
    mode: RewriteMode = Field(default=RewriteMode.COLLISIONS)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    output_suffix: str = Field(
        default="_fixed",
        min_length=1,
        description="Suffix added to the archive stem for the default output path",
    )
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    work_dir_root: Path | None = Field(
        default=None, description="Parent for working directories (default: system temp)"
    )
